"""Thin wrapper over the Stripe SDK.

Holds its API key and webhook secret as instance state and passes the key
per request, so the process-wide ``stripe.api_key`` is never mutated and
tests can build a gateway with their own secrets.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Protocol

import stripe

from learnhub.core.config import SETTINGS
from learnhub.services.errors import (
    MalformedPayloadError,
    SignatureInvalidError,
    UpstreamError,
)

logger = logging.getLogger(__name__)


class PaymentGateway(Protocol):
    async def create_payment_intent(
        self, *, amount_minor: int, metadata: dict[str, str]
    ) -> str:
        """Create an intent and return its client secret."""
        ...

    def construct_event(self, raw_body: bytes, signature: str | None) -> dict[str, Any]:
        """Verify and parse a webhook delivery."""
        ...


class StripeGateway:
    def __init__(
        self,
        *,
        api_key: str | None,
        webhook_secret: str | None,
        currency: str = "usd",
        tolerance_seconds: int = stripe.Webhook.DEFAULT_TOLERANCE,
    ) -> None:
        self._api_key = api_key
        self._webhook_secret = webhook_secret
        self._currency = currency
        self._tolerance = tolerance_seconds

    async def create_payment_intent(
        self, *, amount_minor: int, metadata: dict[str, str]
    ) -> str:
        if not self._api_key:
            raise UpstreamError("Payment provider is not configured")
        try:
            # The SDK call blocks on HTTP; keep it off the event loop.
            intent = await asyncio.to_thread(
                stripe.PaymentIntent.create,
                amount=amount_minor,
                currency=self._currency,
                metadata=metadata,
                api_key=self._api_key,
            )
        except stripe.StripeError as exc:
            logger.error(
                "Stripe PaymentIntent creation failed: %s",
                exc.user_message or type(exc).__name__,
            )
            raise UpstreamError(exc.user_message or "Payment provider error") from exc

        logger.info("PaymentIntent created  intent_id=%s", intent["id"])
        return intent["client_secret"]

    def construct_event(self, raw_body: bytes, signature: str | None) -> dict[str, Any]:
        """Verify the signature over the exact bytes received, then parse.

        Raises SignatureInvalidError or MalformedPayloadError.
        """
        if not self._webhook_secret:
            logger.error("STRIPE_WEBHOOK_SECRET not configured, rejecting webhook")
            raise SignatureInvalidError("Webhook secret not configured")
        if not signature:
            raise SignatureInvalidError("Missing Stripe-Signature header")

        try:
            event = stripe.Webhook.construct_event(
                raw_body, signature, self._webhook_secret, self._tolerance
            )
        except stripe.SignatureVerificationError as exc:
            raise SignatureInvalidError("Invalid webhook signature") from exc
        except ValueError as exc:
            raise MalformedPayloadError("Webhook payload is not valid JSON") from exc
        except (AttributeError, TypeError) as exc:
            # Event.construct_from only accepts a JSON object.
            raise MalformedPayloadError("Webhook payload is not an event") from exc

        payload = _stripe_to_dict(event)
        if (
            not payload.get("id")
            or not payload.get("type")
            or not isinstance(payload.get("data"), dict)
        ):
            raise MalformedPayloadError("Webhook payload is not an event")
        return payload


def _stripe_to_dict(obj: Any) -> dict[str, Any]:
    """Plain nested dicts from a StripeObject, so handlers never see SDK types."""
    to_dict = getattr(obj, "to_dict_recursive", None) or obj.to_dict
    return to_dict()


def build_gateway() -> StripeGateway:
    return StripeGateway(
        api_key=SETTINGS.stripe_secret_key,
        webhook_secret=SETTINGS.stripe_webhook_secret,
        currency=SETTINGS.payment_currency,
    )


stripe_gateway = build_gateway()
