from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class ApiKey:
    id: str
    name: str
    key_prefix: str  # first 8 characters, safe to display
    key_hash: str  # sha256 of the raw key; the raw key itself is never stored
    created_at: datetime
    active: bool = True
    usage_count: int = 0
    last_used_at: datetime | None = None
