from __future__ import annotations

import json
import logging
import threading
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from app.application.exceptions import ConflictError, NotFoundError, StorageError
from app.application.ports.booking_store import BookingStorePort
from app.domain.entities.booking import Booking, BookingFields, BookingStatus, Customer
from app.domain.entities.job import JobRecord


logger = logging.getLogger(__name__)


class JsonBookingStore(BookingStorePort):
    """
    File-backed booking store: one JSON document per booking plus an
    append-only JSON-lines ledger of accepted jobs.

    Documents are written to a temp file and renamed into place, so a reader
    never sees a partially written booking.
    """

    def __init__(self, data_dir: str = "./data") -> None:
        self._data_dir = Path(data_dir)
        self._bookings_dir = self._data_dir / "bookings"
        self._jobs_path = self._data_dir / "jobs.jsonl"
        try:
            self._bookings_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError("Booking store is unavailable") from e
        self._locks: dict[int, threading.Lock] = {}
        self._lock_lock = threading.Lock()  # Lock for managing locks dict
        self._id_lock = threading.Lock()
        self._jobs_lock = threading.Lock()
        self._next_booking_id = self._scan_next_booking_id()
        self._next_job_id = len(self._read_jobs()) + 1

    def _get_lock(self, booking_id: int) -> threading.Lock:
        """Get or create the lock for an existing booking id."""
        if not self._get_file_path(booking_id).exists():
            raise NotFoundError(f"Booking {booking_id} not found")
        with self._lock_lock:
            if booking_id not in self._locks:
                self._locks[booking_id] = threading.Lock()
            return self._locks[booking_id]

    def _get_file_path(self, booking_id: int) -> Path:
        return self._bookings_dir / f"{booking_id}.json"

    def _scan_next_booking_id(self) -> int:
        ids = [int(p.stem) for p in self._bookings_dir.glob("*.json") if p.stem.isdigit()]
        return max(ids, default=0) + 1

    def _load_booking(self, path: Path) -> Booking | None:
        if not path.exists():
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                return self._deserialize_booking(json.load(f))
        except FileNotFoundError:
            return None
        except (json.JSONDecodeError, KeyError, ValueError, OSError) as e:
            logger.error("Unreadable booking document", extra={"path": str(path), "error": str(e)})
            raise StorageError("Booking store is unavailable") from e

    def _save_booking(self, booking: Booking) -> None:
        """Save booking to JSON file atomically."""
        file_path = self._get_file_path(booking.id)
        temp_path = file_path.with_suffix(".json.tmp")

        try:
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump(self._serialize_booking(booking), f, indent=2, ensure_ascii=False)
            temp_path.replace(file_path)
        except OSError as e:
            if temp_path.exists():
                try:
                    temp_path.unlink()
                except OSError:
                    logger.warning("Could not remove temp file", extra={"path": str(temp_path)})
            raise StorageError("Booking store is unavailable") from e

    def _serialize_booking(self, booking: Booking) -> dict[str, Any]:
        return {
            "id": booking.id,
            "customer": {
                "first_name": booking.customer.first_name,
                "last_name": booking.customer.last_name,
                "email": booking.customer.email,
                "phone": booking.customer.phone,
            },
            "service": booking.service,
            "preferred_date": booking.preferred_date,
            "preferred_time": booking.preferred_time,
            "address": booking.address,
            "notes": booking.notes,
            "status": booking.status.value,
            "contractor_id": booking.contractor_id,
            "created_at": booking.created_at.isoformat(),
            "updated_at": booking.updated_at.isoformat(),
            "version": 1,
        }

    def _deserialize_booking(self, data: dict[str, Any]) -> Booking:
        customer = data["customer"]
        return Booking(
            id=int(data["id"]),
            customer=Customer(
                first_name=customer["first_name"],
                last_name=customer["last_name"],
                email=customer["email"],
                phone=customer.get("phone"),
            ),
            service=data["service"],
            preferred_date=data["preferred_date"],
            preferred_time=data["preferred_time"],
            address=data["address"],
            notes=data.get("notes"),
            status=BookingStatus(data["status"]),
            contractor_id=data.get("contractor_id"),
            created_at=datetime.fromisoformat(data["created_at"]),
            updated_at=datetime.fromisoformat(data["updated_at"]),
        )

    def create(self, fields: BookingFields) -> Booking:
        now = _utcnow()
        with self._id_lock:
            booking = Booking(
                id=self._next_booking_id,
                customer=fields.customer,
                service=fields.service,
                preferred_date=fields.preferred_date,
                preferred_time=fields.preferred_time,
                address=fields.address,
                notes=fields.notes,
                created_at=now,
                updated_at=now,
            )
            self._save_booking(booking)
            self._next_booking_id += 1
        return booking

    def get(self, booking_id: int) -> Booking | None:
        return self._load_booking(self._get_file_path(booking_id))

    def list_all(self) -> list[Booking]:
        return _newest_first(self._snapshot())

    def list_pending(self) -> list[Booking]:
        return _newest_first([b for b in self._snapshot() if b.is_claimable])

    def _snapshot(self) -> list[Booking]:
        bookings: list[Booking] = []
        for path in self._bookings_dir.glob("*.json"):
            booking = self._load_booking(path)
            if booking is not None:
                bookings.append(booking)
        return bookings

    def confirm_with_contractor(self, booking_id: int, contractor_id: int) -> Booking:
        with self._get_lock(booking_id):
            _, confirmed = self._confirm(booking_id, contractor_id)
            return confirmed

    def confirm_and_record(self, booking_id: int, contractor_id: int, price: float) -> tuple[Booking, JobRecord]:
        with self._get_lock(booking_id):
            previous, confirmed = self._confirm(booking_id, contractor_id)
            try:
                record = self.append_job(booking_id, contractor_id, price)
            except StorageError:
                self._restore(previous)
                raise
            return confirmed, record

    def _confirm(self, booking_id: int, contractor_id: int) -> tuple[Booking, Booking]:
        # Caller holds the booking's lock.
        current = self.get(booking_id)
        if current is None:
            raise NotFoundError(f"Booking {booking_id} not found")
        if not current.is_claimable:
            raise ConflictError(f"Booking {booking_id} is no longer available")
        confirmed = replace(
            current,
            status=BookingStatus.confirmed,
            contractor_id=contractor_id,
            updated_at=_utcnow(),
        )
        self._save_booking(confirmed)
        return current, confirmed

    def _restore(self, booking: Booking) -> None:
        try:
            self._save_booking(booking)
        except StorageError:
            logger.error(
                "Could not roll back booking after failed job record",
                extra={"booking_id": booking.id, "contractor_id": booking.contractor_id},
            )
            raise

    def cancel(self, booking_id: int) -> Booking:
        with self._get_lock(booking_id):
            current = self.get(booking_id)
            if current is None:
                raise NotFoundError(f"Booking {booking_id} not found")
            if current.status == BookingStatus.cancelled:
                return current
            cancelled = replace(current, status=BookingStatus.cancelled, updated_at=_utcnow())
            self._save_booking(cancelled)
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
            line = json.dumps(
                {
                    "id": record.id,
                    "booking_id": record.booking_id,
                    "contractor_id": record.contractor_id,
                    "price": record.price,
                    "status": record.status,
                    "created_at": record.created_at.isoformat(),
                }
            )
            try:
                with open(self._jobs_path, "a", encoding="utf-8") as f:
                    f.write(line + "\n")
            except OSError as e:
                raise StorageError("Job ledger is unavailable") from e
            self._next_job_id += 1
            return record

    def list_jobs(self, booking_id: int | None = None) -> list[JobRecord]:
        with self._jobs_lock:
            jobs = self._read_jobs()
        if booking_id is not None:
            jobs = [j for j in jobs if j.booking_id == booking_id]
        return jobs

    def _read_jobs(self) -> list[JobRecord]:
        if not self._jobs_path.exists():
            return []
        jobs: list[JobRecord] = []
        try:
            with open(self._jobs_path, "r", encoding="utf-8") as f:
                for line in f:
                    if not line.strip():
                        continue
                    data = json.loads(line)
                    jobs.append(
                        JobRecord(
                            id=int(data["id"]),
                            booking_id=int(data["booking_id"]),
                            contractor_id=int(data["contractor_id"]),
                            price=float(data["price"]),
                            status=data.get("status", "accepted"),
                            created_at=datetime.fromisoformat(data["created_at"]),
                        )
                    )
        except (json.JSONDecodeError, KeyError, ValueError, OSError) as e:
            logger.error("Unreadable job ledger", extra={"error": str(e)})
            raise StorageError("Job ledger is unavailable") from e
        return jobs


def _newest_first(bookings: list[Booking]) -> list[Booking]:
    return sorted(bookings, key=lambda b: (b.created_at, b.id), reverse=True)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)
