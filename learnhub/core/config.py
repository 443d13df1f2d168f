from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Literal

AppEnv = Literal["dev", "test", "prod"]
LogLevel = Literal["debug", "info", "warning", "error"]


def _getenv(name: str, default: str) -> str:
    return os.environ.get(name, default).strip()


def _split_csv(raw: str) -> tuple[str, ...]:
    return tuple(part.strip() for part in raw.split(",") if part.strip())


@dataclass(frozen=True)
class Settings:
    app_env: AppEnv
    log_level: LogLevel
    log_json: bool
    port: int
    database_url: str | None
    redis_url: str | None
    stripe_secret_key: str | None = None
    stripe_webhook_secret: str | None = None
    payment_currency: str = "usd"
    admin_emails: frozenset[str] = field(default_factory=frozenset)
    jwt_private_key: str | None = None
    cors_origins: tuple[str, ...] = ("http://localhost:5173",)

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"

    @property
    def is_test(self) -> bool:
        return self.app_env == "test"

    @property
    def is_prod(self) -> bool:
        return self.app_env == "prod"

    def is_admin_email(self, email: str) -> bool:
        return email.strip().lower() in self.admin_emails


def load_settings() -> Settings:
    app_env_raw = _getenv("APP_ENV", "dev").lower()
    log_level_raw = _getenv("LOG_LEVEL", "info").lower()
    log_json_raw = _getenv("LOG_JSON", "false").lower()
    port_raw = _getenv("PORT", "8000")
    currency_raw = _getenv("PAYMENT_CURRENCY", "usd").lower()

    if app_env_raw not in ("dev", "test", "prod"):
        raise ValueError(f"APP_ENV must be dev|test|prod (got {app_env_raw!r})")

    if log_level_raw not in ("debug", "info", "warning", "error"):
        raise ValueError(
            f"LOG_LEVEL must be debug|info|warning|error (got {log_level_raw!r})"
        )

    try:
        port = int(port_raw)
    except ValueError:
        raise ValueError(f"PORT must be an integer (got {port_raw!r})") from None

    if len(currency_raw) != 3 or not currency_raw.isalpha():
        raise ValueError(
            f"PAYMENT_CURRENCY must be a 3-letter currency code (got {currency_raw!r})"
        )

    # Multi-line PEM keys are commonly passed with escaped newlines.
    jwt_private_key = _getenv("JWT_PRIVATE_KEY", "").replace("\\n", "\n") or None

    return Settings(  # type: ignore[arg-type]
        app_env=app_env_raw,
        log_level=log_level_raw,
        log_json=log_json_raw in ("1", "true", "yes"),
        port=port,
        database_url=_getenv("DATABASE_URL", "") or None,
        redis_url=_getenv("REDIS_URL", "") or None,
        stripe_secret_key=_getenv("STRIPE_SECRET_KEY", "") or None,
        stripe_webhook_secret=_getenv("STRIPE_WEBHOOK_SECRET", "") or None,
        payment_currency=currency_raw,
        admin_emails=frozenset(
            e.lower() for e in _split_csv(_getenv("ADMIN_EMAILS", ""))
        ),
        jwt_private_key=jwt_private_key,
        cors_origins=_split_csv(_getenv("CORS_ORIGINS", "http://localhost:5173")),
    )


SETTINGS = load_settings()
