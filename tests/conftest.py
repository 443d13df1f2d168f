from __future__ import annotations

import asyncio
import hashlib
import hmac
import logging
import time
from collections.abc import Iterator
from uuid import UUID

import pytest
import stripe
from fastapi.testclient import TestClient

from learnhub.api import dependencies
from learnhub.api.dependencies import get_payment_gateway
from learnhub.main import app
from learnhub.models.user import User
from learnhub.services import auth_service, token_service
from learnhub.services.cache import cache_service
from learnhub.services.stripe_gateway import StripeGateway

TEST_PASSWORD = "pw-123456"
WEBHOOK_SECRET = "whsec_test_secret"


@pytest.fixture(autouse=True)
def reset_repos() -> None:
    """Clear the in-memory stores between tests."""
    dependencies.user_repo._by_email.clear()
    dependencies.user_repo._by_id.clear()
    dependencies.purchase_repo._store.clear()
    dependencies.course_repo._by_id.clear()


@pytest.fixture(autouse=True)
def reset_cache() -> None:
    """Clear cache between tests."""
    if hasattr(cache_service, "_store"):
        cache_service._store.clear()  # type: ignore[union-attr]


@pytest.fixture(autouse=True)
def reset_overrides() -> Iterator[None]:
    yield
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def restore_root_logger() -> Iterator[None]:
    """Undo root-logger changes made by setup_logging() between tests."""
    root = logging.getLogger()
    level, handlers = root.level, list(root.handlers)
    yield
    root.setLevel(level)
    root.handlers[:] = handlers


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


def mint_token(user_id: UUID, *, is_admin: bool = False) -> str:
    """Create a valid ES256 JWT for testing."""
    return token_service.create_access_token(sub=str(user_id), is_admin=is_admin)


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {mint_token(user.id, is_admin=user.is_admin)}"}


def seed_user(
    email: str = "learner@example.com",
    *,
    name: str = "Learner",
    roles: tuple[str, ...] = (),
    password: str = TEST_PASSWORD,
) -> User:
    """Create and persist a user in the in-memory repo."""
    user = User.new(
        email=email,
        name=name,
        password_hash=auth_service.hash_password(password),
        roles=roles,
    )
    asyncio.run(dependencies.user_repo.add(user))
    return user


@pytest.fixture
def user() -> User:
    return seed_user()


@pytest.fixture
def admin() -> User:
    return seed_user("admin@example.com", name="Admin", roles=("admin",))


# ---------------------------------------------------------------------------
# Stripe helpers
# ---------------------------------------------------------------------------


def sign_payload(
    payload: str, *, secret: str = WEBHOOK_SECRET, timestamp: int | None = None
) -> str:
    """Build a Stripe-Signature header value for ``payload``."""
    ts = int(time.time()) if timestamp is None else timestamp
    digest = hmac.new(
        secret.encode(), f"{ts}.{payload}".encode(), hashlib.sha256
    ).hexdigest()
    return f"t={ts},v1={digest}"


def succeeded_event(
    user_id: UUID | str,
    course_id: str = "course_101",
    *,
    event_id: str = "evt_1",
    intent_id: str = "pi_1",
    amount: int = 4999,
) -> dict:
    return {
        "id": event_id,
        "type": "payment_intent.succeeded",
        "data": {
            "object": {
                "id": intent_id,
                "amount": amount,
                "metadata": {"courseId": course_id, "userId": str(user_id)},
            }
        },
    }


@pytest.fixture
def gateway() -> StripeGateway:
    """A StripeGateway with test secrets, wired into the app."""
    gw = StripeGateway(api_key="sk_test_123", webhook_secret=WEBHOOK_SECRET)
    app.dependency_overrides[get_payment_gateway] = lambda: gw
    return gw


@pytest.fixture
def stripe_calls(monkeypatch: pytest.MonkeyPatch) -> list[dict]:
    """Replace PaymentIntent.create with a recording fake."""
    calls: list[dict] = []

    def _fake_create(**kwargs):
        calls.append(kwargs)
        n = len(calls)
        return {"id": f"pi_test_{n}", "client_secret": f"pi_test_{n}_secret_abc"}

    monkeypatch.setattr(stripe.PaymentIntent, "create", _fake_create)
    return calls
