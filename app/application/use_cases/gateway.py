from __future__ import annotations

import logging
import re
from datetime import date, datetime, timezone
from typing import Any

from app.application.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from app.application.ports.authenticator import AuthenticatorPort
from app.application.ports.booking_store import BookingStorePort
from app.application.ports.notifier import EventPublisherPort
from app.application.use_cases.claim_job import JobClaimArbiter
from app.domain.entities.booking import Booking, BookingFields
from app.domain.entities.job import JobClaim, JobRecord
from app.domain.entities.stats import StatsView
from app.infrastructure.metering.usage_meter import UsageMeter


BOOKING_CREATED = "booking.created"
BOOKING_CONFIRMED = "booking.confirmed"
BOOKING_CANCELLED = "booking.cancelled"

# 24-hour HH:MM, leading zero optional on the hour.
PREFERRED_TIME_PATTERN = re.compile(r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$")


class GatewayService:
    """
    The operations the gateway exposes: booking intake, the job board, claims
    and usage stats.

    Booking lifecycle:
        pending   -> confirmed  (claim)
        pending   -> cancelled
        confirmed -> cancelled  (contractor stays recorded)
    Nothing ever goes back to pending.
    """

    def __init__(
        self,
        store: BookingStorePort,
        arbiter: JobClaimArbiter,
        authenticator: AuthenticatorPort,
        publisher: EventPublisherPort,
        meter: UsageMeter,
    ) -> None:
        self._store = store
        self._arbiter = arbiter
        self._authenticator = authenticator
        self._publisher = publisher
        self._meter = meter
        self._logger = logging.getLogger(__name__)

    def create_booking(self, fields: BookingFields) -> Booking:
        validate_booking_fields(fields)
        booking = self._store.create(fields)
        self._logger.info("Booking created", extra={"booking_id": booking.id, "service": booking.service})
        self._publish(BOOKING_CREATED, booking)
        return booking

    def list_bookings(self) -> list[Booking]:
        return self._store.list_all()

    def get_booking(self, booking_id: int) -> Booking:
        booking = self._store.get(booking_id)
        if booking is None:
            raise NotFoundError(f"Booking {booking_id} not found")
        return booking

    def list_pending_jobs(self, contractor_id: int | None = None) -> list[Booking]:
        if contractor_id is not None:
            self._require_active_contractor(contractor_id)
        return self._store.list_pending()

    def bid_counts(self) -> dict[int, int]:
        counts: dict[int, int] = {}
        for job in self._store.list_jobs():
            counts[job.booking_id] = counts.get(job.booking_id, 0) + 1
        return counts

    def claim_job(self, booking_id: int, contractor_id: int, price: float) -> JobRecord:
        if booking_id <= 0 or contractor_id <= 0:
            raise ValidationError("bookingId and contractorId must be positive")
        if price < 0:
            raise ValidationError("price must not be negative")
        self._require_active_contractor(contractor_id)

        booking, record = self._arbiter.claim(JobClaim(booking_id=booking_id, contractor_id=contractor_id, price=price))
        self._publish(BOOKING_CONFIRMED, booking, price=price)
        return record

    def cancel_booking(self, booking_id: int) -> Booking:
        booking, changed = self._arbiter.cancel(booking_id)
        if changed:
            self._logger.info("Booking cancelled", extra={"booking_id": booking_id})
            self._publish(BOOKING_CANCELLED, booking)
        return booking

    def list_jobs(self, booking_id: int | None = None) -> list[JobRecord]:
        return self._store.list_jobs(booking_id)

    def get_stats(self) -> StatsView:
        return self._meter.snapshot()

    def _require_active_contractor(self, contractor_id: int) -> None:
        contractor = self._authenticator.get_contractor(contractor_id)
        if contractor is None or not contractor.is_active:
            raise PermissionDeniedError(f"Contractor {contractor_id} is not active")

    def _publish(self, event: str, booking: Booking, **extra: Any) -> None:
        payload: dict[str, Any] = {
            "event": event,
            "booking_id": booking.id,
            "status": booking.status.value,
            "contractor_id": booking.contractor_id,
            "service": booking.service,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        payload.update(extra)
        try:
            self._publisher.publish(event, payload)
        except Exception as e:
            self._logger.warning("Event publish failed", extra={"event": event, "error": str(e)})


def validate_booking_fields(fields: BookingFields) -> None:
    required = {
        "firstName": fields.customer.first_name,
        "lastName": fields.customer.last_name,
        "email": fields.customer.email,
        "serviceName": fields.service,
        "preferredDate": fields.preferred_date,
        "preferredTime": fields.preferred_time,
        "address": fields.address,
    }
    missing = [name for name, value in required.items() if not (value and value.strip())]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    if "@" not in fields.customer.email:
        raise ValidationError("email is not a valid address")

    try:
        date.fromisoformat(fields.preferred_date)
    except ValueError:
        raise ValidationError("preferredDate must be YYYY-MM-DD")

    if not PREFERRED_TIME_PATTERN.match(fields.preferred_time.strip()):
        raise ValidationError("preferredTime must be HH:MM (24-hour)")
