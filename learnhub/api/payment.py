"""Checkout endpoints and the Stripe webhook.

The webhook route is the only unauthenticated write in the API: its
credential is the ``Stripe-Signature`` header, checked against the raw
request bytes before anything is parsed.
"""

from __future__ import annotations

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from pydantic import BaseModel

from learnhub.api.dependencies import (
    get_cache,
    get_payment_gateway,
    get_purchase_repo,
    require_user,
)
from learnhub.models.principal import Principal
from learnhub.repos.purchase_repo import PurchaseRepo
from learnhub.services import payment_service, reconciliation_service
from learnhub.services.cache import CacheService
from learnhub.services.errors import (
    AlreadyPurchasedError,
    InvalidRequestError,
    LedgerWriteError,
    MalformedPayloadError,
    SignatureInvalidError,
    UpstreamError,
)
from learnhub.services.stripe_gateway import PaymentGateway

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/payment", tags=["payment"])


class PaymentIntentIn(BaseModel):
    courseId: str | None = None
    amount: float | None = None


class PaymentIntentOut(BaseModel):
    clientSecret: str


class PurchaseOut(BaseModel):
    id: str
    userId: str
    courseId: str
    paymentIntentId: str
    amount: float
    status: str
    purchaseDate: str | None = None


@router.post("/create-payment-intent", response_model=PaymentIntentOut)
async def create_payment_intent(
    payload: PaymentIntentIn,
    principal: Annotated[Principal, Depends(require_user)],
    ledger: Annotated[PurchaseRepo, Depends(get_purchase_repo)],
    gateway: Annotated[PaymentGateway, Depends(get_payment_gateway)],
) -> PaymentIntentOut:
    try:
        client_secret = await payment_service.create_intent(
            ledger,
            gateway,
            course_id=payload.courseId,
            amount=payload.amount,
            user_id=principal.user_id,
        )
    except (InvalidRequestError, AlreadyPurchasedError) as e:
        raise HTTPException(status_code=400, detail=str(e)) from None
    except UpstreamError:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create payment intent",
        ) from None

    return PaymentIntentOut(clientSecret=client_secret)


@router.post("/webhook")
async def stripe_webhook(
    request: Request,
    ledger: Annotated[PurchaseRepo, Depends(get_purchase_repo)],
    gateway: Annotated[PaymentGateway, Depends(get_payment_gateway)],
    cache: Annotated[CacheService, Depends(get_cache)],
    stripe_signature: Annotated[str | None, Header()] = None,
) -> dict[str, Any]:
    raw_body = await request.body()
    try:
        event = payment_service.verify_webhook(gateway, raw_body, stripe_signature)
        outcome = await reconciliation_service.reconcile(ledger, event, cache)
    except (SignatureInvalidError, MalformedPayloadError, LedgerWriteError) as e:
        raise HTTPException(status_code=400, detail=f"Webhook Error: {e}") from None

    logger.debug("Webhook handled  event_id=%s outcome=%s", event.get("id"), outcome)
    return {"received": True}


@router.get("/purchased-courses", response_model=list[PurchaseOut])
async def purchased_courses(
    principal: Annotated[Principal, Depends(require_user)],
    ledger: Annotated[PurchaseRepo, Depends(get_purchase_repo)],
    cache: Annotated[CacheService, Depends(get_cache)],
) -> list[PurchaseOut]:
    try:
        docs = await payment_service.list_purchases(ledger, cache, principal.user_id)
    except Exception:
        logger.exception("Purchase listing failed  user_id=%s", principal.user_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch purchased courses",
        ) from None

    return [PurchaseOut(**d) for d in docs]
