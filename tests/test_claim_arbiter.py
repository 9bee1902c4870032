"""
Tests for job-claim arbitration under concurrent contractors.
"""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from app.application.exceptions import ConflictError, NotFoundError, StorageError
from app.application.use_cases.claim_job import JobClaimArbiter
from app.domain.entities.booking import BookingFields, BookingStatus, Customer
from app.domain.entities.job import JobClaim
from app.infrastructure.store.json_store import JsonBookingStore
from app.infrastructure.store.memory_store import MemoryBookingStore


def make_fields(service: str = "Plumbing") -> BookingFields:
    return BookingFields(
        customer=Customer(first_name="Sam", last_name="Rivera", email="sam@example.com"),
        service=service,
        preferred_date="2025-06-25",
        preferred_time="09:00",
        address="22 Elm St",
    )


@pytest.fixture(params=["memory", "json"])
def build_store(request, tmp_path):
    """Build a store of the parametrized kind, optionally with test mixins in front of it."""
    base = JsonBookingStore if request.param == "json" else MemoryBookingStore

    def build(*mixins):
        cls = type(f"Test{base.__name__}", (*mixins, base), {})
        if base is JsonBookingStore:
            return cls(data_dir=str(tmp_path))
        return cls()

    return build


def race(arbiter: JobClaimArbiter, booking_id: int, contractor_ids: list[int]) -> list[object]:
    """Release every claim at once; return the claim result or the exception per contractor."""
    barrier = threading.Barrier(len(contractor_ids))

    def attempt(contractor_id: int) -> object:
        barrier.wait()
        try:
            return arbiter.claim(JobClaim(booking_id=booking_id, contractor_id=contractor_id, price=100.0))
        except ConflictError as e:
            return e

    with ThreadPoolExecutor(max_workers=len(contractor_ids)) as pool:
        return list(pool.map(attempt, contractor_ids))


@pytest.mark.parametrize("contenders", [2, 8, 32])
def test_exactly_one_concurrent_claim_wins(build_store, contenders):
    store = build_store()
    arbiter = JobClaimArbiter(store=store)
    booking = store.create(make_fields())

    results = race(arbiter, booking.id, list(range(1, contenders + 1)))

    winners = [r for r in results if not isinstance(r, ConflictError)]
    losers = [r for r in results if isinstance(r, ConflictError)]
    assert len(winners) == 1
    assert len(losers) == contenders - 1
    assert all("no longer available" in str(e) for e in losers)

    [(confirmed, record)] = winners
    settled = store.get(booking.id)
    assert settled.status == BookingStatus.confirmed
    assert settled.contractor_id == record.contractor_id == confirmed.contractor_id
    assert store.list_jobs(booking.id) == [record]


def test_claims_on_different_bookings_do_not_block_each_other(build_store):
    entered = threading.Event()
    release = threading.Event()

    class SlowConfirm:
        slow_id = None

        def confirm_and_record(self, booking_id, contractor_id, price):
            if booking_id == self.slow_id:
                entered.set()
                release.wait(5)
            return super().confirm_and_record(booking_id, contractor_id, price)

    store = build_store(SlowConfirm)
    arbiter = JobClaimArbiter(store=store)
    slow = store.create(make_fields())
    fast = store.create(make_fields(service="Cleaning"))
    store.slow_id = slow.id

    blocked = threading.Thread(
        target=arbiter.claim, args=(JobClaim(booking_id=slow.id, contractor_id=1, price=10.0),)
    )
    blocked.start()
    try:
        assert entered.wait(5)

        done = threading.Event()

        def claim_fast():
            arbiter.claim(JobClaim(booking_id=fast.id, contractor_id=2, price=20.0))
            done.set()

        threading.Thread(target=claim_fast).start()
        assert done.wait(2), "claim on another booking waited on a held booking lock"
        assert store.get(fast.id).contractor_id == 2
        assert store.get(slow.id).status == BookingStatus.pending
    finally:
        release.set()
        blocked.join(5)

    assert store.get(slow.id).contractor_id == 1


def test_failed_job_record_leaves_booking_pending(build_store):
    class BrokenLedger:
        ledger_down = True

        def append_job(self, booking_id, contractor_id, price):
            if self.ledger_down:
                raise StorageError("Job ledger is unavailable")
            return super().append_job(booking_id, contractor_id, price)

    store = build_store(BrokenLedger)
    arbiter = JobClaimArbiter(store=store)
    booking = store.create(make_fields())

    with pytest.raises(StorageError):
        arbiter.claim(JobClaim(booking_id=booking.id, contractor_id=1, price=90.0))

    after = store.get(booking.id)
    assert after.status == BookingStatus.pending
    assert after.contractor_id is None
    assert store.list_jobs() == []

    store.ledger_down = False
    confirmed, record = arbiter.claim(JobClaim(booking_id=booking.id, contractor_id=1, price=90.0))

    assert confirmed.status == BookingStatus.confirmed
    assert store.list_jobs(booking.id) == [record]


def test_claim_on_missing_booking_is_not_found(build_store):
    arbiter = JobClaimArbiter(store=build_store())

    with pytest.raises(NotFoundError):
        arbiter.claim(JobClaim(booking_id=404, contractor_id=1, price=10.0))


def test_unknown_booking_ids_leave_no_locks_behind(build_store):
    store = build_store()
    arbiter = JobClaimArbiter(store=store)

    for booking_id in range(1000, 1050):
        with pytest.raises(NotFoundError):
            arbiter.claim(JobClaim(booking_id=booking_id, contractor_id=1, price=10.0))
        with pytest.raises(NotFoundError):
            arbiter.cancel(booking_id)
        with pytest.raises(NotFoundError):
            store.confirm_with_contractor(booking_id, 1)

    assert arbiter._locks == {}
    assert store._locks == {}


def test_claim_on_cancelled_booking_is_conflict(build_store):
    store = build_store()
    arbiter = JobClaimArbiter(store=store)
    booking = store.create(make_fields())
    store.cancel(booking.id)

    with pytest.raises(ConflictError):
        arbiter.claim(JobClaim(booking_id=booking.id, contractor_id=1, price=10.0))

    assert store.list_jobs() == []


def test_claim_returns_the_confirmed_booking_and_record():
    store = MemoryBookingStore()
    arbiter = JobClaimArbiter(store=store)
    booking = store.create(make_fields())

    confirmed, record = arbiter.claim(JobClaim(booking_id=booking.id, contractor_id=3, price=140.0))

    assert confirmed.id == booking.id
    assert confirmed.status == BookingStatus.confirmed
    assert confirmed.contractor_id == 3
    assert record.booking_id == booking.id
    assert record.contractor_id == 3
    assert record.price == 140.0
    assert record.status == "accepted"


def test_cancel_reports_whether_it_changed_the_booking():
    store = MemoryBookingStore()
    arbiter = JobClaimArbiter(store=store)
    booking = store.create(make_fields())

    first, changed_first = arbiter.cancel(booking.id)
    second, changed_second = arbiter.cancel(booking.id)

    assert first.status == second.status == BookingStatus.cancelled
    assert changed_first is True
    assert changed_second is False

    with pytest.raises(NotFoundError):
        arbiter.cancel(999)
