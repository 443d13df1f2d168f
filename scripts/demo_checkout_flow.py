"""Demo: register, check out a course, and replay the Stripe webhook.

Runs in-process against the in-memory stores with a fake PaymentIntent
API, so no Stripe account is needed.  The webhook deliveries are signed
with a local secret and go through real signature verification.

Run with:
    python scripts/demo_checkout_flow.py
"""

from __future__ import annotations

import hashlib
import hmac
import json
import time

import stripe
from fastapi.testclient import TestClient

from learnhub.api.dependencies import get_payment_gateway
from learnhub.main import app
from learnhub.services.stripe_gateway import StripeGateway

WEBHOOK_SECRET = "whsec_demo"
COURSE_ID = "course_demo_101"


def _fake_create(**kwargs):
    return {"id": "pi_demo_1", "client_secret": "pi_demo_1_secret_x", **kwargs}


def _signed(payload: str) -> dict[str, str]:
    ts = int(time.time())
    sig = hmac.new(
        WEBHOOK_SECRET.encode(), f"{ts}.{payload}".encode(), hashlib.sha256
    ).hexdigest()
    return {"Stripe-Signature": f"t={ts},v1={sig}", "Content-Type": "application/json"}


def main() -> None:
    stripe.PaymentIntent.create = _fake_create  # type: ignore[method-assign]
    gateway = StripeGateway(api_key="sk_test_demo", webhook_secret=WEBHOOK_SECRET)
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    client = TestClient(app)

    r = client.post(
        "/api/auth/register",
        json={"email": "buyer@example.com", "password": "secret1", "name": "Buyer"},
    )
    print(f"1. POST /api/auth/register           → {r.status_code}")
    body = r.json()
    auth = {"Authorization": f"Bearer {body['token']}"}
    user_id = body["user"]["id"]

    r = client.post(
        "/api/payment/create-payment-intent",
        json={"courseId": COURSE_ID, "amount": 49.99},
        headers=auth,
    )
    print(f"2. POST create-payment-intent        → {r.status_code}  {r.json()}")

    event = {
        "id": "evt_demo_1",
        "type": "payment_intent.succeeded",
        "data": {
            "object": {
                "id": "pi_demo_1",
                "amount": 4999,
                "metadata": {"courseId": COURSE_ID, "userId": user_id},
            }
        },
    }
    payload = json.dumps(event)
    for attempt in (1, 2):
        r = client.post("/api/payment/webhook", content=payload, headers=_signed(payload))
        print(f"3.{attempt} POST /api/payment/webhook      → {r.status_code}  {r.json()}")

    r = client.post(
        "/api/payment/webhook",
        content=payload,
        headers={"Stripe-Signature": "t=1,v1=bad"},
    )
    print(f"4. POST webhook (bad signature)      → {r.status_code}")

    r = client.get("/api/payment/purchased-courses", headers=auth)
    print(f"5. GET  purchased-courses            → {r.status_code}  {len(r.json())} row(s)")

    r = client.post(
        "/api/payment/create-payment-intent",
        json={"courseId": COURSE_ID, "amount": 49.99},
        headers=auth,
    )
    print(f"6. POST create-payment-intent again  → {r.status_code}  {r.json()['detail']}")


if __name__ == "__main__":
    main()
