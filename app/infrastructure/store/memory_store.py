from __future__ import annotations

import threading
from dataclasses import replace
from datetime import datetime, timezone

from app.application.exceptions import ConflictError, NotFoundError
from app.application.ports.booking_store import BookingStorePort
from app.domain.entities.booking import Booking, BookingFields, BookingStatus
from app.domain.entities.job import JobRecord


class MemoryBookingStore(BookingStorePort):
    """
    In-process booking store.

    Bookings are frozen records replaced wholesale on every transition, so a
    reader always sees either the old or the new record. Writers to one booking
    are serialized by that booking's lock; different bookings never share one.
    """

    def __init__(self) -> None:
        self._bookings: dict[int, Booking] = {}
        self._jobs: list[JobRecord] = []
        self._next_booking_id = 1
        self._next_job_id = 1
        self._id_lock = threading.Lock()
        self._jobs_lock = threading.Lock()
        self._locks: dict[int, threading.Lock] = {}
        self._lock_lock = threading.Lock()  # Lock for managing locks dict

    def _get_lock(self, booking_id: int) -> threading.Lock:
        """Get or create the row lock for an existing booking id."""
        if booking_id not in self._bookings:
            raise NotFoundError(f"Booking {booking_id} not found")
        with self._lock_lock:
            if booking_id not in self._locks:
                self._locks[booking_id] = threading.Lock()
            return self._locks[booking_id]

    def create(self, fields: BookingFields) -> Booking:
        now = _utcnow()
        with self._id_lock:
            booking_id = self._next_booking_id
            self._next_booking_id += 1
            booking = Booking(
                id=booking_id,
                customer=fields.customer,
                service=fields.service,
                preferred_date=fields.preferred_date,
                preferred_time=fields.preferred_time,
                address=fields.address,
                notes=fields.notes,
                created_at=now,
                updated_at=now,
            )
            self._bookings[booking_id] = booking
        return booking

    def get(self, booking_id: int) -> Booking | None:
        return self._bookings.get(booking_id)

    def list_all(self) -> list[Booking]:
        return _newest_first(self._snapshot())

    def list_pending(self) -> list[Booking]:
        return _newest_first([b for b in self._snapshot() if b.is_claimable])

    def _snapshot(self) -> list[Booking]:
        # Inserts happen under _id_lock; transitions only swap values in place.
        with self._id_lock:
            return list(self._bookings.values())

    def confirm_with_contractor(self, booking_id: int, contractor_id: int) -> Booking:
        with self._get_lock(booking_id):
            return self._confirm(booking_id, contractor_id)

    def confirm_and_record(self, booking_id: int, contractor_id: int, price: float) -> tuple[Booking, JobRecord]:
        with self._get_lock(booking_id):
            previous = self._bookings[booking_id]
            confirmed = self._confirm(booking_id, contractor_id)
            try:
                record = self.append_job(booking_id, contractor_id, price)
            except Exception:
                self._bookings[booking_id] = previous
                raise
            return confirmed, record

    def _confirm(self, booking_id: int, contractor_id: int) -> Booking:
        # Caller holds the booking's row lock.
        current = self._bookings[booking_id]
        if not current.is_claimable:
            raise ConflictError(f"Booking {booking_id} is no longer available")
        confirmed = replace(
            current,
            status=BookingStatus.confirmed,
            contractor_id=contractor_id,
            updated_at=_utcnow(),
        )
        self._bookings[booking_id] = confirmed
        return confirmed

    def cancel(self, booking_id: int) -> Booking:
        with self._get_lock(booking_id):
            current = self._bookings[booking_id]
            if current.status == BookingStatus.cancelled:
                return current
            cancelled = replace(current, status=BookingStatus.cancelled, updated_at=_utcnow())
            self._bookings[booking_id] = cancelled
            return cancelled

    def append_job(self, booking_id: int, contractor_id: int, price: float) -> JobRecord:
        with self._jobs_lock:
            record = JobRecord(
                id=self._next_job_id,
                booking_id=booking_id,
                contractor_id=contractor_id,
                price=price,
                created_at=_utcnow(),
            )
            self._next_job_id += 1
            self._jobs.append(record)
            return record

    def list_jobs(self, booking_id: int | None = None) -> list[JobRecord]:
        with self._jobs_lock:
            jobs = list(self._jobs)
        if booking_id is not None:
            jobs = [j for j in jobs if j.booking_id == booking_id]
        return jobs


def _newest_first(bookings: list[Booking]) -> list[Booking]:
    return sorted(bookings, key=lambda b: (b.created_at, b.id), reverse=True)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)
