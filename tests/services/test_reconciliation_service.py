from __future__ import annotations

import asyncio
from uuid import UUID, uuid4

import pytest
from prometheus_client import REGISTRY

from learnhub.models.purchase import PurchaseRecord, PurchaseStatus
from learnhub.repos.purchase_repo import InMemoryPurchaseRepo
from learnhub.services.cache import InMemoryCacheService, purchases_cache_key
from learnhub.services.errors import LedgerWriteError
from learnhub.services.reconciliation_service import ReconcileOutcome, reconcile
from tests.conftest import succeeded_event


def _sample(name: str, labels: dict | None = None) -> float:
    value = REGISTRY.get_sample_value(name, labels=labels or {})
    return value if value is not None else 0.0


def _other_event(event_type: str, event_id: str = "evt_x") -> dict:
    return {"id": event_id, "type": event_type, "data": {"object": {"id": "pi_x"}}}


# ---- recording ----


def test_first_success_records_purchase() -> None:
    ledger = InMemoryPurchaseRepo()
    user_id = uuid4()
    before = _sample("purchases_recorded_total")

    outcome = asyncio.run(reconcile(ledger, succeeded_event(user_id, amount=4999)))

    assert outcome is ReconcileOutcome.RECORDED
    record = asyncio.run(ledger.get(user_id, "course_101"))
    assert record is not None
    assert record.amount == 49.99
    assert record.payment_intent_id == "pi_1"
    assert record.status is PurchaseStatus.COMPLETED
    assert _sample("purchases_recorded_total") - before == 1


def test_amount_stored_in_major_units() -> None:
    ledger = InMemoryPurchaseRepo()
    user_id = uuid4()
    asyncio.run(reconcile(ledger, succeeded_event(user_id, amount=250000)))
    record = asyncio.run(ledger.get(user_id, "course_101"))
    assert record is not None and record.amount == 2500


# ---- at most once ----


def test_redelivery_interleaved_with_other_events_records_once() -> None:
    ledger = InMemoryPurchaseRepo()
    user_id = uuid4()
    success = succeeded_event(user_id)
    deliveries = [
        _other_event("payment_intent.created"),
        success,
        _other_event("charge.succeeded"),
        success,
        success,
        _other_event("payment_intent.payment_failed"),
        success,
    ]

    outcomes = [asyncio.run(reconcile(ledger, e)) for e in deliveries]

    assert outcomes.count(ReconcileOutcome.RECORDED) == 1
    assert outcomes.count(ReconcileOutcome.DUPLICATE) == 3
    assert len(asyncio.run(ledger.list_for_user(user_id))) == 1


def test_concurrent_deliveries_record_once() -> None:
    ledger = InMemoryPurchaseRepo()
    user_id = uuid4()

    async def _deliver_all() -> list[ReconcileOutcome]:
        return await asyncio.gather(
            *(reconcile(ledger, succeeded_event(user_id)) for _ in range(10))
        )

    outcomes = asyncio.run(_deliver_all())
    assert outcomes.count(ReconcileOutcome.RECORDED) == 1
    assert len(asyncio.run(ledger.list_for_user(user_id))) == 1


class _RacingLedger(InMemoryPurchaseRepo):
    """Never sees an existing row on read, as when two inserts race."""

    async def get(self, user_id: UUID, course_id: str) -> PurchaseRecord | None:
        return None


def test_uniqueness_violation_is_a_duplicate_not_an_error() -> None:
    ledger = _RacingLedger()
    user_id = uuid4()
    assert asyncio.run(reconcile(ledger, succeeded_event(user_id))) is (
        ReconcileOutcome.RECORDED
    )
    assert asyncio.run(reconcile(ledger, succeeded_event(user_id))) is (
        ReconcileOutcome.DUPLICATE
    )
    assert len(ledger._store) == 1


def test_same_user_different_courses_both_recorded() -> None:
    ledger = InMemoryPurchaseRepo()
    user_id = uuid4()
    asyncio.run(reconcile(ledger, succeeded_event(user_id, "course_a")))
    asyncio.run(reconcile(ledger, succeeded_event(user_id, "course_b", intent_id="pi_2")))
    assert len(asyncio.run(ledger.list_for_user(user_id))) == 2


# ---- ignored ----


def test_other_event_types_are_ignored() -> None:
    ledger = InMemoryPurchaseRepo()
    labels = {"event_type": "charge.refunded", "outcome": "ignored"}
    before = _sample("webhook_events_total", labels)
    outcome = asyncio.run(reconcile(ledger, _other_event("charge.refunded")))
    assert outcome is ReconcileOutcome.IGNORED
    assert ledger._store == {}
    assert _sample("webhook_events_total", labels) - before == 1


@pytest.mark.parametrize(
    "metadata",
    [{}, {"courseId": "course_101"}, {"userId": "u"}, {"courseId": "c", "userId": "nope"}],
)
def test_success_without_usable_metadata_is_ignored(
    metadata: dict, caplog: pytest.LogCaptureFixture
) -> None:
    event = succeeded_event(uuid4())
    event["data"]["object"]["metadata"] = metadata
    ledger = InMemoryPurchaseRepo()

    outcome = asyncio.run(reconcile(ledger, event))

    assert outcome is ReconcileOutcome.IGNORED
    assert ledger._store == {}
    assert "without usable metadata" in caplog.text


@pytest.mark.parametrize(
    ("field", "value"),
    [("object", ["x"]), ("object", "pi_1"), ("metadata", "oops"), ("metadata", ["a"])],
)
def test_success_with_non_mapping_intent_or_metadata_is_ignored(
    field: str, value, caplog: pytest.LogCaptureFixture
) -> None:
    event = succeeded_event(uuid4())
    if field == "object":
        event["data"]["object"] = value
    else:
        event["data"]["object"]["metadata"] = value
    ledger = InMemoryPurchaseRepo()

    outcome = asyncio.run(reconcile(ledger, event))

    assert outcome is ReconcileOutcome.IGNORED
    assert ledger._store == {}
    assert "without usable metadata" in caplog.text


# ---- failures ----


class _BrokenLedger(InMemoryPurchaseRepo):
    async def add(self, record: PurchaseRecord) -> None:
        raise ConnectionError("store down")


def test_store_failure_raises_ledger_write_error() -> None:
    with pytest.raises(LedgerWriteError):
        asyncio.run(reconcile(_BrokenLedger(), succeeded_event(uuid4())))


# ---- cache invalidation ----


def test_recorded_purchase_invalidates_listing_cache() -> None:
    ledger = InMemoryPurchaseRepo()
    cache = InMemoryCacheService()
    user_id = uuid4()
    asyncio.run(cache.set(purchases_cache_key(user_id), "[]", 300))

    asyncio.run(reconcile(ledger, succeeded_event(user_id), cache))

    assert purchases_cache_key(user_id) not in cache._store


def test_cache_failure_does_not_reject_recorded_purchase() -> None:
    class _DownCache(InMemoryCacheService):
        async def delete(self, key: str) -> None:
            raise ConnectionError("redis down")

    ledger = InMemoryPurchaseRepo()
    user_id = uuid4()
    outcome = asyncio.run(reconcile(ledger, succeeded_event(user_id), _DownCache()))
    assert outcome is ReconcileOutcome.RECORDED
    assert asyncio.run(ledger.get(user_id, "course_101")) is not None
