"""Fire-and-forget hand-off of booking lifecycle events.

``publish`` never delivers anything itself. With a Celery broker configured it
enqueues ``deliver_event`` for a worker; otherwise it puts the event on a
bounded in-process queue drained by one daemon thread that runs the same task
eagerly. Either way a slow or failing sink never delays or fails the request
that produced the event. Retry and backoff belong to the task (see
``app.infrastructure.notifications.tasks``).

``delivered`` counts events the local thread delivered. ``dropped`` counts
every event that will never be delivered from this process: retries
exhausted, queue full, enqueue failed, or still queued when the dispatcher
stopped.
"""

from __future__ import annotations

import logging
import queue
import threading
import time
from typing import Any

from app.application.ports.notifier import EventPublisherPort, NotificationSinkPort
from app.infrastructure.notifications.tasks import bind_sink, configure_celery, deliver_event, release_sink


class NotificationDispatcher(EventPublisherPort):
    def __init__(
        self,
        sink: NotificationSinkPort,
        max_retries: int = 3,
        backoff_seconds: float = 1.0,
        broker_url: str | None = None,
        max_queue_size: int = 10_000,
        task=deliver_event,
    ) -> None:
        self._sink = sink
        self._max_retries = max_retries
        self._backoff_seconds = backoff_seconds
        self._broker_url = broker_url
        self._task = task
        self._queue: queue.Queue[dict[str, Any]] = queue.Queue(maxsize=max_queue_size)
        self._stop = threading.Event()
        self._stopped = False
        self._worker: threading.Thread | None = None
        self._counter_lock = threading.Lock()
        self._logger = logging.getLogger(__name__)
        self.delivered = 0
        self.dropped = 0

    def start(self) -> None:
        self._stopped = False
        bind_sink(self._sink)
        if self._broker_url:
            configure_celery(self._broker_url)
            return
        if self._worker is not None and self._worker.is_alive():
            return
        self._stop.clear()
        self._worker = threading.Thread(target=self._run, name="notification-dispatcher", daemon=True)
        self._worker.start()

    def stop(self, timeout: float = 5.0) -> None:
        self._stopped = True
        self._stop.set()
        if self._worker is not None:
            self._worker.join(timeout)
            self._worker = None

        abandoned = 0
        while True:
            try:
                self._queue.get_nowait()
            except queue.Empty:
                break
            self._queue.task_done()
            abandoned += 1
        if abandoned:
            self._count_dropped(abandoned)
            self._logger.warning("Dispatcher stopped with undelivered events", extra={"error": f"{abandoned} dropped"})

        release_sink(self._sink)
        self._sink.close()

    def flush(self, timeout: float | None = None) -> bool:
        """
        Wait until every queued event was delivered or dropped.

        Returns False without waiting further if the worker is not running or
        the timeout passes first.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._queue.all_tasks_done:
            while self._queue.unfinished_tasks:
                worker = self._worker
                if worker is None or not worker.is_alive():
                    return False
                wait = 0.1
                if deadline is not None:
                    wait = min(wait, deadline - time.monotonic())
                    if wait <= 0:
                        return False
                self._queue.all_tasks_done.wait(wait)
        return True

    def publish(self, event: str, payload: dict[str, Any]) -> None:
        if self._stopped:
            self._count_dropped()
            self._logger.warning("Dispatcher is stopped; event dropped", extra={"event": event})
            return

        if self._broker_url:
            try:
                self._task.apply_async(args=[payload], kwargs=self._retry_policy())
            except Exception as e:
                self._count_dropped()
                self._logger.error("Could not enqueue notification; event dropped", extra={"event": event, "error": str(e)})
            return

        try:
            self._queue.put_nowait(payload)
        except queue.Full:
            self._count_dropped()
            self._logger.error("Notification queue full; event dropped", extra={"event": event})

    def _retry_policy(self) -> dict[str, Any]:
        return {"max_retries": self._max_retries, "backoff_seconds": self._backoff_seconds}

    def _run(self) -> None:
        while not self._stop.is_set():
            try:
                payload = self._queue.get(timeout=0.2)
            except queue.Empty:
                continue
            try:
                self._deliver(payload)
            finally:
                self._queue.task_done()

    def _deliver(self, payload: dict[str, Any]) -> None:
        try:
            result = self._task.apply(args=[payload], kwargs=self._retry_policy())
            error = None if result.successful() else result.result
        except Exception as e:
            error = e
        if error is None:
            with self._counter_lock:
                self.delivered += 1
            return
        self._count_dropped()
        self._logger.error(
            "Notification delivery failed; giving up",
            extra={"event": payload.get("event"), "booking_id": payload.get("booking_id"), "error": str(error)},
        )

    def _count_dropped(self, n: int = 1) -> None:
        with self._counter_lock:
            self.dropped += n
