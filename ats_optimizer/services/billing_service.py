from __future__ import annotations

import json
import logging
from typing import Any

from ats_optimizer.billing import apply_billing_event, parse_billing_event, verify_signature
from ats_optimizer.billing.reconciler import ReconcileOutcome
from ats_optimizer.core.config import settings
from ats_optimizer.schemas.account import PlanStatus, UserAccount
from ats_optimizer.storage import payments as payment_store
from ats_optimizer.storage import users as user_store

from .errors import InvalidInput, ServiceError

logger = logging.getLogger(__name__)


def handle_webhook(raw_body: bytes, signature: str | None) -> ReconcileOutcome:
    """Verify and apply one provider delivery.

    Only a missing secret or a bad signature is reported to the caller. Every
    other outcome is acknowledged so the provider stops retrying.
    """
    if not settings.billing_webhook_secret:
        logger.error("billing_webhook_unconfigured")
        raise ServiceError("Billing webhook is not configured.", status_code=500)
    if not verify_signature(raw_body, signature, settings.billing_webhook_secret):
        logger.warning("billing_webhook_rejected reason=invalid_signature")
        raise InvalidInput("Invalid signature")

    try:
        payload = json.loads(raw_body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        logger.warning("billing_event_malformed reason=invalid_json")
        return ReconcileOutcome.IGNORED

    event = parse_billing_event(payload)
    if event is None:
        return ReconcileOutcome.IGNORED
    return apply_billing_event(event)


def payment_history(user: UserAccount) -> list[dict[str, Any]]:
    return payment_store.list_user_payments(user.id, limit=20)


def cancel_subscription(user: UserAccount) -> None:
    """Mark the current subscription as cancelled; entitlements last until the plan expires."""
    if not user.subscription_id:
        raise InvalidInput("No active subscription found")

    user_store.apply_account_update(user.id, {"plan_status": PlanStatus.CANCELLED})
    payment_store.update_subscription_status(user.subscription_id, PlanStatus.CANCELLED.value)
    logger.info("subscription_cancel_requested user_id=%s subscription_id=%s", user.id, user.subscription_id)
