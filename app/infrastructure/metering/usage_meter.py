"""Process-wide request metering.

``usage_meter`` is created when this module is first imported, i.e. at process
start, and lives until the process exits. Nothing is persisted.

Every counter update takes the meter's lock for the duration of the increment
only, so counts are exact under concurrent requests while handlers themselves
run unserialized.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass

from app.domain.entities.stats import EndpointStats, StatsView


class UsageMeterContractError(RuntimeError):
    """Raised when a completion is recorded for an endpoint that never started."""


@dataclass
class _EndpointCounter:
    count: int = 0
    total_time_ms: float = 0.0
    error_count: int = 0


class UsageMeter:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._started_at = time.monotonic()
        self._total_requests = 0
        self._total_errors = 0
        self._endpoints: dict[tuple[str, str], _EndpointCounter] = {}
        self._keys: dict[str, int] = {}

    def record_request(self, method: str, path: str, key_id: str | None = None) -> None:
        """Count a request before its handler runs."""
        endpoint = (method.upper(), path)
        with self._lock:
            self._total_requests += 1
            counter = self._endpoints.get(endpoint)
            if counter is None:
                counter = self._endpoints[endpoint] = _EndpointCounter()
            counter.count += 1
            if key_id:
                self._keys[key_id] = self._keys.get(key_id, 0) + 1

    def record_key(self, key_id: str) -> None:
        """Attribute an already counted request to an API key."""
        with self._lock:
            self._keys[key_id] = self._keys.get(key_id, 0) + 1

    def record_completion(self, method: str, path: str, status_code: int, duration_ms: float) -> None:
        endpoint = (method.upper(), path)
        with self._lock:
            counter = self._endpoints.get(endpoint)
            if counter is None:
                raise UsageMeterContractError(f"Completion recorded for unstarted endpoint {endpoint[0]} {endpoint[1]}")
            counter.total_time_ms += duration_ms
            if status_code >= 400:
                counter.error_count += 1
                self._total_errors += 1

    def snapshot(self) -> StatsView:
        with self._lock:
            total_requests = self._total_requests
            total_errors = self._total_errors
            endpoints = [
                EndpointStats(
                    method=method,
                    path=path,
                    count=c.count,
                    error_count=c.error_count,
                    avg_latency_ms=round(c.total_time_ms / c.count, 2) if c.count else 0.0,
                )
                for (method, path), c in self._endpoints.items()
            ]
            keys = dict(self._keys)
            uptime = time.monotonic() - self._started_at

        endpoints.sort(key=lambda e: e.count, reverse=True)
        return StatsView(
            total_requests=total_requests,
            total_errors=total_errors,
            error_rate=format_error_rate(total_errors, total_requests),
            uptime_seconds=round(uptime, 2),
            endpoints=endpoints,
            keys=keys,
        )

    def reset(self) -> None:
        """Clear every counter. Only meant for tests; production resets by restarting."""
        with self._lock:
            self._started_at = time.monotonic()
            self._total_requests = 0
            self._total_errors = 0
            self._endpoints.clear()
            self._keys.clear()


def format_error_rate(total_errors: int, total_requests: int) -> str:
    if total_requests == 0:
        return "0.00%"
    return f"{total_errors / total_requests * 100:.2f}%"


usage_meter = UsageMeter()
