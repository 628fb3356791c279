from __future__ import annotations

from ats_optimizer.core.config import settings


def cors_allowed_origins() -> list[str]:
    origins = list(settings.cors_allowed_origins)
    if settings.frontend_url and settings.frontend_url not in origins:
        origins.append(settings.frontend_url)
    return origins


def cors_allow_origin_regex() -> str | None:
    regex = (settings.cors_allow_origin_regex or "").strip()
    return regex or None
