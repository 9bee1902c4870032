from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class BookingStatus(str, Enum):
    pending = "pending"
    confirmed = "confirmed"
    cancelled = "cancelled"


@dataclass(frozen=True)
class Customer:
    first_name: str
    last_name: str
    email: str
    phone: str | None = None


@dataclass(frozen=True)
class BookingFields:
    """Descriptive fields supplied by the customer. Never change after creation."""
    customer: Customer
    service: str
    preferred_date: str  # YYYY-MM-DD
    preferred_time: str
    address: str
    notes: str | None = None


@dataclass(frozen=True)
class Booking:
    id: int
    customer: Customer
    service: str
    preferred_date: str
    preferred_time: str
    address: str
    notes: str | None
    created_at: datetime
    updated_at: datetime
    status: BookingStatus = BookingStatus.pending
    contractor_id: int | None = None

    @property
    def is_claimable(self) -> bool:
        return self.status == BookingStatus.pending and self.contractor_id is None
