from __future__ import annotations

import asyncio
import logging
from dataclasses import replace

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHash, VerificationError, VerifyMismatchError

from learnhub.core.config import SETTINGS
from learnhub.core.metrics import LOGIN_LOOKUP_RETRIES
from learnhub.models.user import User
from learnhub.repos.user_repo import UserRepo
from learnhub.services.errors import (
    InvalidCredentialsError,
    InvalidRequestError,
    UserAlreadyExistsError,
    UserLookupError,
)

logger = logging.getLogger(__name__)

_ph = PasswordHasher()

MIN_PASSWORD_LENGTH = 6

# Login lookup retry: smooths over transient store read timeouts only.
LOGIN_LOOKUP_ATTEMPTS = 3
LOGIN_LOOKUP_TIMEOUT_SECONDS = 5.0
LOGIN_RETRY_DELAY_SECONDS = 1.0


def hash_password(plain_password: str) -> str:
    if not plain_password:
        raise ValueError("password must be non-empty")
    return _ph.hash(plain_password)


def verify_password(plain_password: str, password_hash: str | None) -> bool:
    if not plain_password or not password_hash:
        return False
    try:
        return _ph.verify(password_hash, plain_password)
    except (VerifyMismatchError, VerificationError, InvalidHash):
        return False


def normalize_email(email: str) -> str:
    return email.strip().lower()


async def register_user(
    repo: UserRepo,
    *,
    email: str,
    password: str,
    name: str,
    mobile: str | None = None,
) -> User:
    email = normalize_email(email)
    name = name.strip()
    if not email or not password or not name:
        raise InvalidRequestError("All fields are required")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise InvalidRequestError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
        )

    if await repo.get_by_email(email) is not None:
        logger.warning("Rejected duplicate registration email=%s", email)
        raise UserAlreadyExistsError(email)

    roles = ("admin",) if SETTINGS.is_admin_email(email) else ()
    user = User.new(
        email=email,
        name=name,
        password_hash=hash_password(password),
        roles=roles,
        mobile=mobile or None,
    )
    try:
        await repo.add(user)
    except ValueError:
        # Lost a race with a concurrent registration for the same email.
        raise UserAlreadyExistsError(email) from None

    logger.info("User registered  user_id=%s email=%s", user.id, email)
    return user


async def _lookup_with_retry(repo: UserRepo, email: str) -> User | None:
    """Fetch a user by email, retrying transient failures.

    Each attempt is bounded by LOGIN_LOOKUP_TIMEOUT_SECONDS.  A missing
    user is a definitive answer and is not retried.
    """
    last_error: Exception | None = None
    for attempt in range(1, LOGIN_LOOKUP_ATTEMPTS + 1):
        try:
            return await asyncio.wait_for(
                repo.get_by_email(email), timeout=LOGIN_LOOKUP_TIMEOUT_SECONDS
            )
        except Exception as exc:
            last_error = exc
            remaining = LOGIN_LOOKUP_ATTEMPTS - attempt
            if remaining == 0:
                break
            LOGIN_LOOKUP_RETRIES.labels(result="retried").inc()
            logger.warning(
                "Login lookup failed (%s); retrying, attempts remaining=%d",
                type(exc).__name__,
                remaining,
            )
            await asyncio.sleep(LOGIN_RETRY_DELAY_SECONDS)

    LOGIN_LOOKUP_RETRIES.labels(result="exhausted").inc()
    logger.error("Login lookup failed after %d attempts", LOGIN_LOOKUP_ATTEMPTS)
    raise UserLookupError("Database operation failed, please try again") from last_error


async def authenticate_user(repo: UserRepo, email: str, password: str) -> User:
    email = normalize_email(email)
    if not email or not password:
        raise InvalidRequestError("Email and password are required")

    user = await _lookup_with_retry(repo, email)
    if user is None or not verify_password(password, user.password_hash):
        raise InvalidCredentialsError("Invalid credentials")

    if SETTINGS.is_admin_email(email) and not user.is_admin:
        roles = (*user.roles, "admin")
        await repo.set_roles(user.id, roles)
        logger.info("Promoted configured admin user_id=%s", user.id)
        user = replace(user, roles=roles)

    return user
