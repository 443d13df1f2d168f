"""Turns verified payment events into purchase ledger rows, exactly once.

Per (user_id, course_id) the ledger moves NoRecord -> Completed on the
first ``payment_intent.succeeded`` delivery and stays there: redeliveries,
duplicates and reordering all converge on the same single row because the
ledger's uniqueness constraint, not an in-process lock, decides who wins.

Outcome contract for the webhook route:
  recorded / duplicate / ignored   acknowledge (200)
  LedgerWriteError                 reject (400) so the provider redelivers
"""

from __future__ import annotations

import logging
from enum import StrEnum
from typing import Any
from uuid import UUID

from learnhub.core.metrics import PURCHASES_RECORDED, WEBHOOK_EVENTS
from learnhub.models.purchase import PurchaseRecord
from learnhub.repos.purchase_repo import PurchaseRepo
from learnhub.services.cache import CacheService, purchases_cache_key
from learnhub.services.errors import DuplicatePurchaseError, LedgerWriteError

logger = logging.getLogger(__name__)

PAYMENT_SUCCEEDED = "payment_intent.succeeded"


class ReconcileOutcome(StrEnum):
    RECORDED = "recorded"
    DUPLICATE = "duplicate"
    IGNORED = "ignored"


def _metadata_refs(intent: dict[str, Any]) -> tuple[UUID, str] | None:
    metadata = intent.get("metadata")
    if not isinstance(metadata, dict):
        return None
    course_id = metadata.get("courseId")
    raw_user_id = metadata.get("userId")
    if not course_id or not raw_user_id:
        return None
    try:
        return UUID(str(raw_user_id)), str(course_id)
    except ValueError:
        return None


async def reconcile(
    ledger: PurchaseRepo,
    event: dict[str, Any],
    cache: CacheService | None = None,
) -> ReconcileOutcome:
    """Apply one verified provider event to the ledger."""
    event_id = event.get("id")
    event_type = event.get("type")
    log_extra = {"event_id": event_id, "event_type": event_type}

    if event_type != PAYMENT_SUCCEEDED:
        logger.debug("Ignoring webhook event type=%s", event_type, extra=log_extra)
        WEBHOOK_EVENTS.labels(event_type=event_type, outcome="ignored").inc()
        return ReconcileOutcome.IGNORED

    intent = event["data"].get("object")
    if not isinstance(intent, dict):
        intent = {}
    refs = _metadata_refs(intent)
    intent_id = intent.get("id")
    amount_minor = intent.get("amount")
    if refs is None or not intent_id or not isinstance(amount_minor, int):
        # Redelivery cannot repair a payload that lacks correlation data.
        logger.warning(
            "Payment succeeded without usable metadata  intent_id=%s",
            intent_id,
            extra=log_extra,
        )
        WEBHOOK_EVENTS.labels(event_type=event_type, outcome="ignored").inc()
        return ReconcileOutcome.IGNORED

    user_id, course_id = refs
    log_extra["user_id"] = str(user_id)
    log_extra["course_id"] = course_id

    try:
        if await ledger.get(user_id, course_id) is not None:
            outcome = ReconcileOutcome.DUPLICATE
        else:
            await ledger.add(
                PurchaseRecord.new(
                    user_id=user_id,
                    course_id=course_id,
                    payment_intent_id=intent_id,
                    amount=amount_minor / 100,
                )
            )
            outcome = ReconcileOutcome.RECORDED
    except DuplicatePurchaseError:
        # A concurrent delivery inserted first.
        outcome = ReconcileOutcome.DUPLICATE
    except Exception as exc:
        logger.exception(
            "Ledger write failed  intent_id=%s", intent_id, extra=log_extra
        )
        WEBHOOK_EVENTS.labels(event_type=event_type, outcome="failed").inc()
        raise LedgerWriteError("Purchase could not be recorded") from exc

    WEBHOOK_EVENTS.labels(event_type=event_type, outcome=str(outcome)).inc()
    if outcome is ReconcileOutcome.DUPLICATE:
        logger.info(
            "Duplicate payment event acknowledged  intent_id=%s",
            intent_id,
            extra=log_extra,
        )
        return outcome

    PURCHASES_RECORDED.inc()
    logger.info("Purchase recorded  intent_id=%s", intent_id, extra=log_extra)
    if cache is not None:
        await _invalidate_listing(cache, user_id)
    return outcome


async def _invalidate_listing(cache: CacheService, user_id: UUID) -> None:
    # The purchase is already durable; a cache outage must not turn the
    # delivery into a rejection.  The TTL bounds the staleness.
    try:
        await cache.delete(purchases_cache_key(user_id))
    except Exception:
        logger.warning(
            "Could not invalidate purchases cache  user_id=%s", user_id, exc_info=True
        )
