from __future__ import annotations

import logging
import threading

from app.application.exceptions import ConflictError, NotFoundError
from app.application.ports.booking_store import BookingStorePort
from app.domain.entities.booking import Booking
from app.domain.entities.job import JobClaim, JobRecord


class JobClaimArbiter:
    """
    Decides which contractor gets a booking when several claim it at once.

    Each booking id has its own lock. A claim takes that lock, re-reads the
    booking and only then asks the store to confirm it and record the job, so
    racing claims on one booking are totally ordered and the first to find it
    pending wins. Claims on different bookings never wait on each other.
    """

    def __init__(self, store: BookingStorePort) -> None:
        self._store = store
        self._locks: dict[int, threading.Lock] = {}
        self._lock_lock = threading.Lock()  # Lock for managing locks dict
        self._logger = logging.getLogger(__name__)

    def _get_lock(self, booking_id: int) -> threading.Lock:
        """Get or create the claim lock for an existing booking id."""
        if self._store.get(booking_id) is None:
            raise NotFoundError(f"Booking {booking_id} not found")
        with self._lock_lock:
            if booking_id not in self._locks:
                self._locks[booking_id] = threading.Lock()
            return self._locks[booking_id]

    def claim(self, claim: JobClaim) -> tuple[Booking, JobRecord]:
        """
        Returns the confirmed booking as it stood when the claim won, and the
        job record.

        Raises:
            NotFoundError: booking does not exist
            ConflictError: booking was already claimed or cancelled
            StorageError: nothing was changed
        """
        with self._get_lock(claim.booking_id):
            booking = self._store.get(claim.booking_id)
            if not booking.is_claimable:
                self._logger.info(
                    "Claim rejected",
                    extra={
                        "booking_id": claim.booking_id,
                        "contractor_id": claim.contractor_id,
                        "status": booking.status.value,
                    },
                )
                raise ConflictError("Booking is no longer available")

            confirmed, record = self._store.confirm_and_record(claim.booking_id, claim.contractor_id, claim.price)

        self._logger.info(
            "Job claimed",
            extra={"booking_id": claim.booking_id, "contractor_id": claim.contractor_id},
        )
        return confirmed, record

    def cancel(self, booking_id: int) -> tuple[Booking, bool]:
        """
        Cancel under the same per-booking lock claims use.

        Returns the booking and whether this call changed it; a repeated cancel
        returns False.
        """
        with self._get_lock(booking_id):
            before = self._store.get(booking_id)
            booking = self._store.cancel(booking_id)
        return booking, before.status != booking.status
