"""JWT access token creation and validation (ES256).

Centralizes token logic so auth.py (issuance) and dependencies.py
(validation) share the same key and claims schema.
"""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime, timedelta

import jwt
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from learnhub.core.config import SETTINGS

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Key management
# ---------------------------------------------------------------------------
# JWT_PRIVATE_KEY (PEM, P-256) is required for tokens to survive restarts
# and to be accepted by every API process.  Without it each process signs
# with its own ephemeral key, which is only suitable for dev and tests.


def _load_private_key() -> ec.EllipticCurvePrivateKey:
    if SETTINGS.jwt_private_key:
        key = serialization.load_pem_private_key(
            SETTINGS.jwt_private_key.encode(), password=None
        )
        if not isinstance(key, ec.EllipticCurvePrivateKey):
            raise ValueError("JWT_PRIVATE_KEY must be an EC (P-256) private key")
        return key
    if SETTINGS.is_prod:
        logger.warning("JWT_PRIVATE_KEY not set, using an ephemeral signing key")
    return ec.generate_private_key(ec.SECP256R1())


_private_key = _load_private_key()
_public_key = _private_key.public_key()

ALGORITHM = "ES256"
ISSUER = "learnhub-api"
AUDIENCE = "learnhub-api"
ACCESS_TOKEN_TTL_HOURS = 24


def create_access_token(*, sub: str, is_admin: bool = False) -> str:
    """Build and sign an access token carrying the user id and admin flag."""
    now = datetime.now(UTC)
    payload = {
        "sub": sub,
        "iss": ISSUER,
        "aud": AUDIENCE,
        "exp": now + timedelta(hours=ACCESS_TOKEN_TTL_HOURS),
        "iat": now,
        "jti": str(uuid.uuid4()),
        "roles": ["admin"] if is_admin else ["user"],
    }
    return jwt.encode(payload, _private_key, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    """Verify signature and claims, return the payload.

    Pins the algorithm to ES256.  Raises jwt.ExpiredSignatureError or
    jwt.InvalidTokenError on failure.
    """
    return jwt.decode(
        token,
        _public_key,
        algorithms=[ALGORITHM],
        issuer=ISSUER,
        audience=AUDIENCE,
        options={"require": ["sub", "exp", "iat", "jti"]},
    )
