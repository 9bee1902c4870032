"""Celery delivery of booking lifecycle events.

``deliver_event`` sends one event through the bound notification sink. A
failed send is retried with exponential backoff
(``backoff_seconds * 2 ** retries``, capped at ``MAX_BACKOFF_SECONDS``) until
``max_retries`` retries have been used; then the last error propagates and
Celery marks the task failed.

With ``CELERY_BROKER_URL`` set the API process only enqueues, and a worker
started with ``celery -A app.infrastructure.notifications.tasks worker``
delivers. Without a broker the dispatcher runs the task eagerly on its own
thread; Celery re-applies eager retries immediately, so the backoff only
spaces out retries under a broker.

Event payload shape:
    {
        "event": "booking.confirmed",
        "booking_id": 7,
        "status": "confirmed",
        "contractor_id": 42,
        "service": "Plumbing",
        "timestamp": "2025-06-25T10:00:00+00:00"
    }
"""

from __future__ import annotations

import logging
import threading
from typing import Any

from celery import Celery
from celery.utils.time import get_exponential_backoff_interval

from app.application.ports.notifier import NotificationSinkPort
from app.core.config import settings
from app.infrastructure.notifications.sinks import sink_from_settings


logger = logging.getLogger(__name__)

MAX_BACKOFF_SECONDS = 600

celery_app = Celery("leila_gateway")
celery_app.conf.task_serializer = "json"
celery_app.conf.accept_content = ["json"]
celery_app.conf.task_ignore_result = True

_sink: NotificationSinkPort | None = None
_sink_lock = threading.Lock()


def configure_celery(broker_url: str) -> None:
    celery_app.conf.broker_url = broker_url


def bind_sink(sink: NotificationSinkPort) -> None:
    global _sink
    with _sink_lock:
        _sink = sink


def release_sink(sink: NotificationSinkPort) -> None:
    """Unbind ``sink`` if it is still the bound one."""
    global _sink
    with _sink_lock:
        if _sink is sink:
            _sink = None


def current_sink() -> NotificationSinkPort:
    """The sink deliveries go to. A worker process builds one from settings on first use."""
    global _sink
    with _sink_lock:
        if _sink is None:
            _sink = sink_from_settings(settings)
        return _sink


@celery_app.task(bind=True, name="leila_gateway.deliver_event")
def deliver_event(self, payload: dict[str, Any], max_retries: int = 3, backoff_seconds: float = 1.0) -> dict[str, Any]:
    try:
        current_sink().send(payload)
    except Exception as exc:
        countdown = get_exponential_backoff_interval(backoff_seconds, self.request.retries, MAX_BACKOFF_SECONDS)
        logger.warning(
            "Notification delivery failed",
            extra={"event": payload.get("event"), "booking_id": payload.get("booking_id"), "error": str(exc)},
        )
        raise self.retry(exc=exc, countdown=countdown, max_retries=max_retries)
    return {"event": payload.get("event"), "booking_id": payload.get("booking_id"), "retries": self.request.retries}


if settings.CELERY_BROKER_URL:
    configure_celery(settings.CELERY_BROKER_URL)
