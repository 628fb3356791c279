from __future__ import annotations

import logging
from datetime import datetime

from ats_optimizer.billing.gate import denial_message, user_can_perform
from ats_optimizer.core.config import settings
from ats_optimizer.schemas.account import Action, UserAccount
from ats_optimizer.storage import users as user_store

from .errors import GateDenied, InvalidInput, ServiceError

logger = logging.getLogger(__name__)


def register_user(*, email: str, first_name: str, last_name: str) -> UserAccount:
    normalized = email.strip().lower()
    try:
        user = user_store.create_user(
            email=normalized,
            first_name=first_name.strip(),
            last_name=last_name.strip(),
            is_admin=normalized in settings.admin_emails,
        )
    except user_store.DuplicateEmailError as exc:
        raise InvalidInput("User already exists") from exc
    logger.info("user_registered user_id=%s admin=%s", user.id, user.is_admin)
    return user


def refresh_account(user: UserAccount, *, now: datetime | None = None) -> UserAccount:
    """Apply the lazy monthly counter reset and return the current account state."""
    if user_store.reset_usage_if_new_period(user.id, now):
        refreshed = user_store.get_user(user.id)
        if refreshed is None:
            raise ServiceError("Account disappeared during refresh.")
        return refreshed
    return user


def ensure_allowed(user: UserAccount, action: Action, *, now: datetime | None = None) -> None:
    if not user_can_perform(user, action, now=now):
        logger.info("gate_denied user_id=%s plan=%s action=%s", user.id, user.plan.value, action.value)
        raise GateDenied(denial_message(user, action, now=now), plan=user.plan, usage=user.usage)


def rotate_api_key(user: UserAccount) -> str:
    api_key = user_store.rotate_api_key(user.id)
    logger.info("api_key_rotated user_id=%s", user.id)
    return api_key
