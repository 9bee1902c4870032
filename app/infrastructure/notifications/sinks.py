from __future__ import annotations

import logging
from typing import Any

import httpx

from app.application.ports.notifier import NotificationSinkPort
from app.core.config import Settings


logger = logging.getLogger(__name__)


class HttpNotificationSink(NotificationSinkPort):
    """POSTs lifecycle events to the CRM webhook."""

    def __init__(self, url: str, timeout: float = 10.0, client: httpx.Client | None = None) -> None:
        self._url = url
        self._client = client or httpx.Client(timeout=timeout)
        self._logger = logging.getLogger(__name__)

    def send(self, payload: dict[str, Any]) -> None:
        resp = self._client.post(self._url, json=payload)
        if resp.status_code >= 400:
            self._logger.error(
                "CRM webhook rejected event",
                extra={
                    "event": payload.get("event"),
                    "booking_id": payload.get("booking_id"),
                    "status": resp.status_code,
                },
            )
            resp.raise_for_status()

    def close(self) -> None:
        self._client.close()


class LoggingNotificationSink(NotificationSinkPort):
    def __init__(self) -> None:
        self._logger = logging.getLogger(__name__)

    def send(self, payload: dict[str, Any]) -> None:
        self._logger.info(
            "WOULD_NOTIFY_CRM",
            extra={"event": payload.get("event"), "booking_id": payload.get("booking_id")},
        )


def sink_from_settings(settings: Settings) -> NotificationSinkPort:
    if not settings.CRM_WEBHOOK_URL:
        logger.info("CRM_WEBHOOK_URL not set; using LoggingNotificationSink")
        return LoggingNotificationSink()
    return HttpNotificationSink(url=settings.CRM_WEBHOOK_URL, timeout=settings.NOTIFY_TIMEOUT_SECONDS)
