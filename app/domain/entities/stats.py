from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class EndpointStats:
    method: str
    path: str
    count: int
    error_count: int
    avg_latency_ms: float


@dataclass(frozen=True)
class StatsView:
    total_requests: int
    total_errors: int
    error_rate: str  # e.g. "30.00%"
    uptime_seconds: float
    endpoints: list[EndpointStats] = field(default_factory=list)
    keys: dict[str, int] = field(default_factory=dict)
