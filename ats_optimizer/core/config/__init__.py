from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


def _get_env(name: str, default: str | None = None) -> str | None:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value


def _get_env_bool(name: str, default: bool) -> bool:
    raw = _get_env(name, None)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _get_env_int(name: str, default: int) -> int:
    raw = _get_env(name, None)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _get_env_list(name: str, default: list[str]) -> tuple[str, ...]:
    raw = _get_env(name, None)
    if raw is None:
        return tuple(default)
    values = [item.strip() for item in raw.split(",")]
    clean = [item for item in values if item]
    return tuple(clean) if clean else tuple(default)


@dataclass(frozen=True)
class Settings:
    log_level: str
    sentry_dsn: str | None
    database_path: str
    scoring_config_path: str | None
    rate_limit: str
    rate_limit_enabled: bool
    cors_allowed_origins: tuple[str, ...]
    cors_allow_origin_regex: str | None
    cors_allow_credentials: bool
    admin_emails: tuple[str, ...]
    billing_webhook_secret: str | None
    variant_one_time: str | None
    variant_basic: str | None
    variant_pro: str | None
    developer_rate_limit: int
    developer_rate_window_seconds: int
    max_upload_bytes: int
    frontend_url: str
    smtp_host: str | None
    smtp_port: int
    smtp_user: str | None
    smtp_password: str | None
    smtp_from: str | None
    smtp_use_tls: bool
    smtp_fallback_ssl: bool


settings = Settings(
    log_level=_get_env("LOG_LEVEL", "INFO") or "INFO",
    sentry_dsn=_get_env("SENTRY_DSN"),
    database_path=_get_env("DATABASE_PATH", "data/ats_optimizer.db") or "data/ats_optimizer.db",
    scoring_config_path=_get_env("SCORING_CONFIG_PATH"),
    rate_limit=_get_env("RATE_LIMIT", "60/minute") or "60/minute",
    rate_limit_enabled=_get_env_bool("RATE_LIMIT_ENABLED", True),
    cors_allowed_origins=_get_env_list(
        "CORS_ALLOWED_ORIGINS",
        [
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ],
    ),
    cors_allow_origin_regex=_get_env("CORS_ALLOW_ORIGIN_REGEX"),
    cors_allow_credentials=_get_env_bool("CORS_ALLOW_CREDENTIALS", True),
    admin_emails=tuple(email.lower() for email in _get_env_list("ADMIN_EMAILS", [])),
    billing_webhook_secret=_get_env("BILLING_WEBHOOK_SECRET"),
    variant_one_time=_get_env("LEMONSQUEEZY_VARIANT_ONE_TIME"),
    variant_basic=_get_env("LEMONSQUEEZY_VARIANT_BASIC"),
    variant_pro=_get_env("LEMONSQUEEZY_VARIANT_PRO"),
    developer_rate_limit=_get_env_int("DEVELOPER_RATE_LIMIT", 50),
    developer_rate_window_seconds=_get_env_int("DEVELOPER_RATE_WINDOW_SECONDS", 15 * 60),
    max_upload_bytes=_get_env_int("MAX_UPLOAD_BYTES", 10 * 1024 * 1024),
    frontend_url=_get_env("FRONTEND_URL", "http://localhost:3000") or "http://localhost:3000",
    smtp_host=_get_env("SMTP_HOST"),
    smtp_port=_get_env_int("SMTP_PORT", 587),
    smtp_user=_get_env("SMTP_USER"),
    smtp_password=_get_env("SMTP_PASSWORD"),
    smtp_from=_get_env("SMTP_FROM"),
    smtp_use_tls=_get_env_bool("SMTP_USE_TLS", True),
    smtp_fallback_ssl=_get_env_bool("SMTP_FALLBACK_SSL", True),
)

if settings.developer_rate_limit < 1:
    raise RuntimeError("DEVELOPER_RATE_LIMIT must be a positive integer.")

__all__ = ["Settings", "settings"]
