"""Stripe webhook: signature verification and at-most-once reconciliation."""

from __future__ import annotations

import json

from fastapi.testclient import TestClient
from prometheus_client import REGISTRY

from learnhub.api import dependencies
from learnhub.api.dependencies import get_purchase_repo
from learnhub.main import app
from learnhub.models.purchase import PurchaseRecord
from learnhub.models.user import User
from learnhub.repos.purchase_repo import InMemoryPurchaseRepo
from learnhub.services.stripe_gateway import StripeGateway
from tests.conftest import auth_headers, sign_payload, succeeded_event


def _deliver(client: TestClient, event: dict, *, signature: str | None = None):
    payload = json.dumps(event)
    headers = {"Content-Type": "application/json"}
    headers["Stripe-Signature"] = signature or sign_payload(payload)
    return client.post("/api/payment/webhook", content=payload, headers=headers)


def _ledger_rows(user: User) -> list:
    return [r for (uid, _), r in dependencies.purchase_repo._store.items() if uid == user.id]


def _sample(name: str, labels: dict | None = None) -> float:
    value = REGISTRY.get_sample_value(name, labels=labels or {})
    return value if value is not None else 0.0


# ---- signature ----


def test_missing_signature_is_400(client: TestClient, gateway: StripeGateway) -> None:
    resp = client.post("/api/payment/webhook", content=b"{}")
    assert resp.status_code == 400
    assert resp.json()["detail"].startswith("Webhook Error:")


def test_bad_signature_is_400_and_records_nothing(
    client: TestClient, user: User, gateway: StripeGateway
) -> None:
    event = succeeded_event(user.id)
    resp = _deliver(
        client,
        event,
        signature=sign_payload(json.dumps(event), secret="whsec_attacker"),
    )
    assert resp.status_code == 400
    assert _ledger_rows(user) == []


def test_signed_non_json_body_is_400(client: TestClient, gateway: StripeGateway) -> None:
    payload = "not json"
    resp = client.post(
        "/api/payment/webhook",
        content=payload,
        headers={"Stripe-Signature": sign_payload(payload)},
    )
    assert resp.status_code == 400


# ---- reconciliation ----


def test_success_event_records_purchase(
    client: TestClient, user: User, gateway: StripeGateway
) -> None:
    resp = _deliver(client, succeeded_event(user.id, amount=250000))
    assert resp.status_code == 200
    assert resp.json() == {"received": True}

    [row] = _ledger_rows(user)
    assert row.course_id == "course_101"
    assert row.amount == 2500
    assert row.payment_intent_id == "pi_1"


def test_redelivery_is_acknowledged_and_recorded_once(
    client: TestClient, user: User, gateway: StripeGateway
) -> None:
    success = succeeded_event(user.id)
    other = {"id": "evt_2", "type": "charge.succeeded", "data": {"object": {}}}
    labels = {"event_type": "payment_intent.succeeded", "outcome": "duplicate"}
    before = _sample("webhook_events_total", labels)

    statuses = [
        _deliver(client, e).status_code
        for e in (success, other, success, success, other, success)
    ]

    assert statuses == [200] * 6
    assert len(_ledger_rows(user)) == 1
    assert _sample("webhook_events_total", labels) - before == 3


def test_unrelated_event_is_acknowledged(
    client: TestClient, user: User, gateway: StripeGateway
) -> None:
    event = {"id": "evt_3", "type": "customer.created", "data": {"object": {}}}
    assert _deliver(client, event).status_code == 200
    assert dependencies.purchase_repo._store == {}


def test_success_without_metadata_is_acknowledged(
    client: TestClient, user: User, gateway: StripeGateway
) -> None:
    event = succeeded_event(user.id)
    event["data"]["object"]["metadata"] = {}
    assert _deliver(client, event).status_code == 200
    assert dependencies.purchase_repo._store == {}


def test_success_with_list_intent_object_is_acknowledged(
    client: TestClient, user: User, gateway: StripeGateway
) -> None:
    event = succeeded_event(user.id)
    event["data"]["object"] = ["x"]
    assert _deliver(client, event).status_code == 200
    assert dependencies.purchase_repo._store == {}


def test_success_with_string_metadata_is_acknowledged(
    client: TestClient, user: User, gateway: StripeGateway
) -> None:
    event = succeeded_event(user.id)
    event["data"]["object"]["metadata"] = "oops"
    assert _deliver(client, event).status_code == 200
    assert dependencies.purchase_repo._store == {}


def test_ledger_failure_is_400_so_stripe_retries(
    client: TestClient, user: User, gateway: StripeGateway
) -> None:
    class _DownLedger(InMemoryPurchaseRepo):
        async def add(self, record: PurchaseRecord) -> None:
            raise ConnectionError("store down")

    app.dependency_overrides[get_purchase_repo] = lambda: _DownLedger()
    resp = _deliver(client, succeeded_event(user.id))
    assert resp.status_code == 400


# ---- end to end ----


def test_checkout_flow_blocks_second_purchase(
    client: TestClient, user: User, gateway: StripeGateway, stripe_calls: list[dict]
) -> None:
    headers = auth_headers(user)
    body = {"courseId": "course_101", "amount": 49.99}

    first = client.post("/api/payment/create-payment-intent", json=body, headers=headers)
    assert first.status_code == 200

    # Prime the listing cache, then let the webhook invalidate it.
    assert client.get("/api/payment/purchased-courses", headers=headers).json() == []
    assert _deliver(client, succeeded_event(user.id)).status_code == 200

    listing = client.get("/api/payment/purchased-courses", headers=headers).json()
    assert [p["courseId"] for p in listing] == ["course_101"]

    second = client.post("/api/payment/create-payment-intent", json=body, headers=headers)
    assert second.status_code == 400
    assert len(stripe_calls) == 1
