from __future__ import annotations

from abc import ABC, abstractmethod

from app.domain.entities.booking import Booking, BookingFields
from app.domain.entities.job import JobRecord


class BookingStorePort(ABC):
    @abstractmethod
    def create(self, fields: BookingFields) -> Booking:
        """Persist a new booking with status=pending and no contractor."""
        raise NotImplementedError

    @abstractmethod
    def get(self, booking_id: int) -> Booking | None:
        raise NotImplementedError

    @abstractmethod
    def list_all(self) -> list[Booking]:
        """All bookings, newest first."""
        raise NotImplementedError

    @abstractmethod
    def list_pending(self) -> list[Booking]:
        """
        Point-in-time snapshot of bookings with status=pending and no contractor,
        newest first by created_at.
        """
        raise NotImplementedError

    @abstractmethod
    def confirm_with_contractor(self, booking_id: int, contractor_id: int) -> Booking:
        """
        Atomically move a pending booking to confirmed and bind the contractor.

        Raises:
            NotFoundError: booking does not exist
            ConflictError: booking is already confirmed or cancelled
        """
        raise NotImplementedError

    @abstractmethod
    def confirm_and_record(self, booking_id: int, contractor_id: int, price: float) -> tuple[Booking, JobRecord]:
        """
        Confirm a pending booking and append its job record as one step under
        the booking's lock. If either part fails the booking is left pending
        and no job record exists.

        Raises:
            NotFoundError: booking does not exist
            ConflictError: booking is already confirmed or cancelled
            StorageError: the change could not be persisted
        """
        raise NotImplementedError

    @abstractmethod
    def cancel(self, booking_id: int) -> Booking:
        """
        Mark a booking cancelled. Idempotent: an already cancelled booking is returned unchanged.

        Raises:
            NotFoundError: booking does not exist
        """
        raise NotImplementedError

    @abstractmethod
    def append_job(self, booking_id: int, contractor_id: int, price: float) -> JobRecord:
        """Append an accepted job record to the audit trail. Records are never mutated."""
        raise NotImplementedError

    @abstractmethod
    def list_jobs(self, booking_id: int | None = None) -> list[JobRecord]:
        raise NotImplementedError
