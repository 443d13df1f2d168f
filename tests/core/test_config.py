from __future__ import annotations

import pytest

from learnhub.core.config import load_settings

# ---- valid values ----


def test_load_settings_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "APP_ENV",
        "LOG_LEVEL",
        "LOG_JSON",
        "PORT",
        "PAYMENT_CURRENCY",
        "ADMIN_EMAILS",
        "STRIPE_SECRET_KEY",
        "CORS_ORIGINS",
    ):
        monkeypatch.delenv(name, raising=False)
    settings = load_settings()
    assert settings.app_env == "dev"
    assert settings.log_level == "info"
    assert settings.log_json is False
    assert settings.port == 8000
    assert settings.payment_currency == "usd"
    assert settings.admin_emails == frozenset()
    assert settings.stripe_secret_key is None
    assert settings.cors_origins == ("http://localhost:5173",)


def test_load_settings_normalizes_case_and_whitespace(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("APP_ENV", "  PROD ")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    monkeypatch.setenv("PAYMENT_CURRENCY", " EUR ")
    settings = load_settings()
    assert settings.app_env == "prod"
    assert settings.is_prod
    assert settings.log_level == "debug"
    assert settings.payment_currency == "eur"


def test_log_json_accepts_truthy_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LOG_JSON", "1")
    assert load_settings().log_json is True
    monkeypatch.setenv("LOG_JSON", "no")
    assert load_settings().log_json is False


def test_blank_urls_and_secrets_become_none(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URL", "   ")
    monkeypatch.setenv("REDIS_URL", "")
    monkeypatch.setenv("STRIPE_WEBHOOK_SECRET", "")
    settings = load_settings()
    assert settings.database_url is None
    assert settings.redis_url is None
    assert settings.stripe_webhook_secret is None


# ---- admin emails / CORS ----


def test_admin_emails_are_split_and_lowercased(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("ADMIN_EMAILS", "Boss@Example.com, ops@example.com,,")
    settings = load_settings()
    assert settings.admin_emails == frozenset({"boss@example.com", "ops@example.com"})
    assert settings.is_admin_email("  BOSS@example.com ")
    assert not settings.is_admin_email("learner@example.com")


def test_cors_origins_split(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CORS_ORIGINS", "https://a.example, https://b.example")
    assert load_settings().cors_origins == ("https://a.example", "https://b.example")


def test_jwt_private_key_unescapes_newlines(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("JWT_PRIVATE_KEY", "-----BEGIN-----\\nabc\\n-----END-----")
    assert load_settings().jwt_private_key == "-----BEGIN-----\nabc\n-----END-----"


# ---- invalid values ----


def test_load_settings_rejects_invalid_app_env(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("APP_ENV", "staging")
    with pytest.raises(ValueError, match="APP_ENV must be dev|test|prod"):
        load_settings()


def test_load_settings_rejects_invalid_log_level(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("LOG_LEVEL", "verbose")
    with pytest.raises(ValueError, match="LOG_LEVEL"):
        load_settings()


def test_load_settings_rejects_non_integer_port(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("PORT", "eighty")
    with pytest.raises(ValueError, match="PORT must be an integer"):
        load_settings()


@pytest.mark.parametrize("currency", ["us", "dollars", "12a"])
def test_load_settings_rejects_bad_currency(
    monkeypatch: pytest.MonkeyPatch, currency: str
) -> None:
    monkeypatch.setenv("PAYMENT_CURRENCY", currency)
    with pytest.raises(ValueError, match="PAYMENT_CURRENCY"):
        load_settings()
