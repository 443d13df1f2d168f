"""Domain exceptions raised by the service layer.

Routers translate these into HTTP responses; services never import
FastAPI.  The comment on each class names the status code the router
answers with.
"""

from __future__ import annotations


class InvalidRequestError(ValueError):
    """Missing or malformed input (400)."""


class AlreadyPurchasedError(Exception):
    """A completed purchase already exists for (user, course) (400)."""


class AlreadyEnrolledError(Exception):
    """The user already has an enrollment with this title (400)."""


class UserAlreadyExistsError(Exception):
    """Registration with an email that is taken (400)."""


class InvalidCredentialsError(Exception):
    """Unknown email or wrong password (400)."""


class UserNotFoundError(LookupError):
    """The referenced user does not exist (404)."""


class NotEnrolledError(LookupError):
    """No enrollment with the requested title (404)."""


class SignatureInvalidError(Exception):
    """Webhook signature missing or not valid for the configured secret (400)."""


class MalformedPayloadError(Exception):
    """Webhook body is not a provider event (400)."""


class LedgerWriteError(Exception):
    """The ledger could not durably record a verified purchase (400).

    Surfaced as a rejection so the provider redelivers the event later.
    """


class UpstreamError(Exception):
    """Payment provider or store unavailable or misconfigured (500)."""


class UserLookupError(Exception):
    """Login lookup kept failing after all retry attempts (500)."""


class DuplicatePurchaseError(Exception):
    """Ledger uniqueness violation on (user_id, course_id).

    Raised by purchase repositories; never leaves the service layer.
    """
