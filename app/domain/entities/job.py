from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class JobClaim:
    booking_id: int
    contractor_id: int
    price: float


@dataclass(frozen=True)
class JobRecord:
    id: int
    booking_id: int
    contractor_id: int
    price: float
    created_at: datetime
    status: str = "accepted"
