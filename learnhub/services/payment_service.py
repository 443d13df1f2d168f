"""Checkout: PaymentIntent creation, webhook verification, purchase listing."""

from __future__ import annotations

import json
import logging
from decimal import Decimal, InvalidOperation
from typing import Any
from uuid import UUID

from learnhub.core.metrics import PAYMENT_INTENTS_CREATED
from learnhub.models.purchase import PurchaseRecord
from learnhub.repos.purchase_repo import PurchaseRepo
from learnhub.services.cache import CacheService, purchases_cache_key
from learnhub.services.errors import (
    AlreadyPurchasedError,
    InvalidRequestError,
    MalformedPayloadError,
    SignatureInvalidError,
)
from learnhub.services.stripe_gateway import PaymentGateway

logger = logging.getLogger(__name__)

PURCHASES_CACHE_TTL = 300
MINOR_UNITS_PER_MAJOR = 100


def to_minor_units(amount: int | float | Decimal) -> int:
    """Convert a major-unit amount (dollars) to provider minor units (cents)."""
    try:
        minor = Decimal(str(amount)) * MINOR_UNITS_PER_MAJOR
    except InvalidOperation:
        raise InvalidRequestError("Amount must be a number") from None
    if not minor.is_finite():
        raise InvalidRequestError("Amount must be a finite number")
    return int(minor.to_integral_value())


async def create_intent(
    ledger: PurchaseRepo,
    gateway: PaymentGateway,
    *,
    course_id: str | None,
    amount: int | float | None,
    user_id: UUID,
) -> str:
    """Create a PaymentIntent for (user, course) and return its client secret.

    No intent is created when the ledger already holds a purchase for the
    pair.  The provider carries ``courseId``/``userId`` as metadata back
    to the webhook.
    """
    if not course_id or amount is None:
        raise InvalidRequestError("Course ID and amount are required")
    amount_minor = to_minor_units(amount)
    if amount_minor <= 0:
        raise InvalidRequestError("Amount must be greater than zero")

    if await ledger.get(user_id, course_id) is not None:
        logger.info(
            "Intent refused, already purchased  user_id=%s course_id=%s",
            user_id,
            course_id,
        )
        raise AlreadyPurchasedError("You have already purchased this course")

    client_secret = await gateway.create_payment_intent(
        amount_minor=amount_minor,
        metadata={"courseId": course_id, "userId": str(user_id)},
    )
    PAYMENT_INTENTS_CREATED.inc()
    logger.info(
        "Checkout started  user_id=%s course_id=%s amount_minor=%d",
        user_id,
        course_id,
        amount_minor,
    )
    return client_secret


def verify_webhook(
    gateway: PaymentGateway, raw_body: bytes, signature: str | None
) -> dict[str, Any]:
    """Authenticate a webhook delivery.  Must receive the unparsed body."""
    try:
        return gateway.construct_event(raw_body, signature)
    except SignatureInvalidError as exc:
        logger.warning("Webhook rejected: %s", exc)
        raise
    except MalformedPayloadError as exc:
        logger.warning("Webhook rejected: %s", exc)
        raise


def purchase_to_doc(record: PurchaseRecord) -> dict[str, Any]:
    return {
        "id": str(record.id),
        "userId": str(record.user_id),
        "courseId": record.course_id,
        "paymentIntentId": record.payment_intent_id,
        "amount": record.amount,
        "status": str(record.status),
        "purchaseDate": (
            record.purchase_date.isoformat() if record.purchase_date else None
        ),
    }


async def list_purchases(
    ledger: PurchaseRepo, cache: CacheService, user_id: UUID
) -> list[dict[str, Any]]:
    """Return the user's purchases, read-through cached.

    A listing read just before a purchase is recorded can still write its
    result back after the webhook invalidated the key, so an entry may be
    stale for up to PURCHASES_CACHE_TTL.  Empty listings are not cached:
    a first purchase is always visible on the next read.
    """
    key = purchases_cache_key(user_id)
    cached = await cache.get(key)
    if cached is not None:
        return json.loads(cached)

    docs = [purchase_to_doc(r) for r in await ledger.list_for_user(user_id)]
    if docs:
        await cache.set(key, json.dumps(docs), PURCHASES_CACHE_TTL)
    return docs
