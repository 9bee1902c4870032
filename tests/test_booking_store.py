"""
Tests for the booking stores: lifecycle transitions, ordering and persistence.
"""

from __future__ import annotations

import json
import tempfile
from pathlib import Path

import pytest

from app.application.exceptions import ConflictError, NotFoundError, StorageError
from app.domain.entities.booking import BookingFields, BookingStatus, Customer
from app.infrastructure.store.json_store import JsonBookingStore
from app.infrastructure.store.memory_store import MemoryBookingStore


def make_fields(service: str = "Plumbing", date: str = "2025-06-25") -> BookingFields:
    return BookingFields(
        customer=Customer(first_name="Ada", last_name="Lovelace", email="ada@example.com", phone="555-0100"),
        service=service,
        preferred_date=date,
        preferred_time="10:00",
        address="1 Main St",
        notes="Leaking sink",
    )


@pytest.fixture(params=["memory", "json"])
def store(request, tmp_path):
    if request.param == "json":
        return JsonBookingStore(data_dir=str(tmp_path))
    return MemoryBookingStore()


def test_create_assigns_increasing_ids_and_pending_status(store):
    first = store.create(make_fields())
    second = store.create(make_fields(service="Cleaning"))

    assert second.id > first.id
    assert first.status == BookingStatus.pending
    assert first.contractor_id is None
    assert first.customer.email == "ada@example.com"
    assert first.notes == "Leaking sink"


def test_list_pending_is_newest_first_and_skips_claimed(store):
    a = store.create(make_fields(service="Plumbing"))
    b = store.create(make_fields(service="Cleaning"))
    c = store.create(make_fields(service="Painting"))
    store.confirm_with_contractor(b.id, contractor_id=7)

    pending = store.list_pending()

    assert [bk.id for bk in pending] == [c.id, a.id]


def test_list_pending_is_a_snapshot(store):
    booking = store.create(make_fields())
    snapshot = store.list_pending()

    store.confirm_with_contractor(booking.id, contractor_id=1)

    assert [b.id for b in snapshot] == [booking.id]
    assert [b.id for b in snapshot] == [booking.id]  # iterating again gives the same view
    assert store.list_pending() == []


def test_confirm_sets_status_and_contractor_together(store):
    booking = store.create(make_fields())

    confirmed = store.confirm_with_contractor(booking.id, contractor_id=42)

    assert confirmed.status == BookingStatus.confirmed
    assert confirmed.contractor_id == 42
    stored = store.get(booking.id)
    assert stored.status == BookingStatus.confirmed
    assert stored.contractor_id == 42


def test_confirm_twice_is_a_conflict(store):
    booking = store.create(make_fields())
    store.confirm_with_contractor(booking.id, contractor_id=1)

    with pytest.raises(ConflictError):
        store.confirm_with_contractor(booking.id, contractor_id=2)

    assert store.get(booking.id).contractor_id == 1


def test_confirm_unknown_booking_is_not_found(store):
    with pytest.raises(NotFoundError):
        store.confirm_with_contractor(999, contractor_id=1)


def test_cancel_is_idempotent(store):
    booking = store.create(make_fields())

    first = store.cancel(booking.id)
    second = store.cancel(booking.id)

    assert first.status == BookingStatus.cancelled
    assert second == first


def test_cancel_unknown_booking_is_not_found(store):
    with pytest.raises(NotFoundError):
        store.cancel(12345)


def test_cancel_after_confirm_keeps_contractor(store):
    booking = store.create(make_fields())
    store.confirm_with_contractor(booking.id, contractor_id=9)

    cancelled = store.cancel(booking.id)

    assert cancelled.status == BookingStatus.cancelled
    assert cancelled.contractor_id == 9


def test_status_never_returns_to_pending(store):
    confirmed = store.create(make_fields())
    cancelled = store.create(make_fields())
    store.confirm_with_contractor(confirmed.id, contractor_id=1)
    store.cancel(cancelled.id)

    for booking_id in (confirmed.id, cancelled.id):
        with pytest.raises(ConflictError):
            store.confirm_with_contractor(booking_id, contractor_id=2)
        store.cancel(booking_id)
        assert store.get(booking_id).status == BookingStatus.cancelled

    assert store.list_pending() == []


def test_job_ledger_is_append_only(store):
    booking = store.create(make_fields())
    other = store.create(make_fields())

    first = store.append_job(booking.id, contractor_id=1, price=150.0)
    second = store.append_job(other.id, contractor_id=2, price=90.0)

    assert second.id == first.id + 1
    assert first.status == "accepted"
    assert store.list_jobs() == [first, second]
    assert store.list_jobs(booking_id=other.id) == [second]


def test_json_store_persists_across_instances():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = JsonBookingStore(data_dir=tmpdir)
        booking = store.create(make_fields())
        store.confirm_with_contractor(booking.id, contractor_id=5)
        store.append_job(booking.id, contractor_id=5, price=120.0)

        reopened = JsonBookingStore(data_dir=tmpdir)
        stored = reopened.get(booking.id)

        assert stored.status == BookingStatus.confirmed
        assert stored.contractor_id == 5
        assert stored.created_at == booking.created_at
        assert len(reopened.list_jobs()) == 1

        next_booking = reopened.create(make_fields())
        assert next_booking.id == booking.id + 1
        assert reopened.append_job(next_booking.id, 6, 80.0).id == 2


def test_json_store_writes_plain_documents():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = JsonBookingStore(data_dir=tmpdir)
        booking = store.create(make_fields())

        with open(Path(tmpdir) / "bookings" / f"{booking.id}.json", encoding="utf-8") as f:
            data = json.load(f)

        assert data["status"] == "pending"
        assert data["contractor_id"] is None
        assert data["customer"]["first_name"] == "Ada"
        assert not list((Path(tmpdir) / "bookings").glob("*.tmp"))


def test_json_store_corrupt_document_is_storage_error():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = JsonBookingStore(data_dir=tmpdir)
        booking = store.create(make_fields())
        (Path(tmpdir) / "bookings" / f"{booking.id}.json").write_text("{not json", encoding="utf-8")

        with pytest.raises(StorageError):
            store.get(booking.id)


def test_confirm_and_record_is_all_or_nothing(store):
    booking = store.create(make_fields())

    confirmed, record = store.confirm_and_record(booking.id, contractor_id=4, price=75.0)

    assert confirmed.status == BookingStatus.confirmed
    assert confirmed.contractor_id == 4
    assert store.list_jobs(booking.id) == [record]

    with pytest.raises(ConflictError):
        store.confirm_and_record(booking.id, contractor_id=5, price=60.0)
    with pytest.raises(NotFoundError):
        store.confirm_and_record(999, contractor_id=5, price=60.0)

    assert store.get(booking.id).contractor_id == 4
    assert len(store.list_jobs()) == 1
