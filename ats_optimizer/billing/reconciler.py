from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from enum import Enum
from typing import Any

from ats_optimizer.core.config import settings
from ats_optimizer.schemas.account import Plan, PlanStatus, UserAccount
from ats_optimizer.schemas.billing import (
    BillingEvent,
    BillingEventKind,
    OrderCreated,
    PaymentFailed,
    PaymentSucceeded,
    SubscriptionCancelled,
    SubscriptionCreated,
    SubscriptionExpired,
    SubscriptionResumed,
    SubscriptionUpdated,
)
from ats_optimizer.storage import payments as payment_store
from ats_optimizer.storage import users as user_store

logger = logging.getLogger(__name__)


class ReconcileOutcome(str, Enum):
    APPLIED = "applied"
    DUPLICATE = "duplicate"
    IGNORED = "ignored"
    FAILED = "failed"


_PROVIDER_STATUS = {
    "active": PlanStatus.ACTIVE,
    "on_trial": PlanStatus.ACTIVE,
    "cancelled": PlanStatus.CANCELLED,
    "expired": PlanStatus.EXPIRED,
    "past_due": PlanStatus.PAST_DUE,
    "unpaid": PlanStatus.PAST_DUE,
    "paused": PlanStatus.PENDING,
}


def map_provider_status(status: str | None) -> PlanStatus:
    return _PROVIDER_STATUS.get((status or "").strip().lower(), PlanStatus.PENDING)


def plan_for_variant(variant_id: str | None) -> Plan:
    """Resolve a provider variant id to a plan; unmapped ids are one-time purchases."""
    variants = {
        settings.variant_one_time: Plan.ONE_TIME,
        settings.variant_basic: Plan.BASIC,
        settings.variant_pro: Plan.PRO,
    }
    variants.pop(None, None)
    variants.pop("", None)
    return variants.get(str(variant_id or ""), Plan.ONE_TIME)


def _ignored(event: BillingEvent, reason: str) -> ReconcileOutcome:
    logger.info("billing_event_ignored reason=%s event_key=%s", reason, event.event_key)
    return ReconcileOutcome.IGNORED


def _update(
    user: UserAccount,
    event: BillingEvent,
    changes: dict[str, Any],
    *,
    reset_usage: bool = False,
    now: datetime | None = None,
) -> ReconcileOutcome:
    applied = user_store.apply_account_update(
        user.id,
        changes,
        reset_usage=reset_usage,
        event_key=event.event_key,
        event_kind=event.kind.value,
        dedupe=reset_usage,
        now=now,
    )
    if not applied:
        logger.info("billing_event_duplicate event_key=%s user_id=%s", event.event_key, user.id)
        return ReconcileOutcome.DUPLICATE
    logger.info(
        "billing_event_applied event_key=%s user_id=%s fields=%s reset_usage=%s",
        event.event_key,
        user.id,
        ",".join(sorted(changes)) or "-",
        reset_usage,
    )
    return ReconcileOutcome.APPLIED


def _subscriber(event: BillingEvent, subscription_id: str) -> UserAccount | None:
    user = user_store.get_user_by_subscription(subscription_id)
    if user is None:
        _ignored(event, "unknown_subscription")
    return user


def _order_created(event: OrderCreated, now: datetime | None) -> ReconcileOutcome:
    user = user_store.get_user_by_email(event.user_email)
    if user is None:
        return _ignored(event, "unknown_user")

    plan = plan_for_variant(event.variant_id)
    payment_store.record_order(
        user_id=user.id,
        order_id=event.object_id,
        customer_id=event.customer_id,
        product_name=event.product_name,
        variant_name=event.variant_name,
        amount=event.amount,
        currency=event.currency,
        payment_type="one_time" if plan == Plan.ONE_TIME else "subscription",
        plan=plan.value,
    )
    if plan != Plan.ONE_TIME:
        # Subscription plans are granted by subscription_created.
        return _update(user, event, {"customer_id": event.customer_id}, now=now)

    return _update(
        user,
        event,
        {"plan": Plan.ONE_TIME, "plan_status": PlanStatus.ACTIVE, "customer_id": event.customer_id},
        reset_usage=True,
        now=now,
    )


def _subscription_created(event: SubscriptionCreated, now: datetime | None) -> ReconcileOutcome:
    user = user_store.get_user_by_email(event.user_email)
    if user is None:
        return _ignored(event, "unknown_user")

    status = PlanStatus.ACTIVE if map_provider_status(event.status) == PlanStatus.ACTIVE else PlanStatus.PENDING
    outcome = _update(
        user,
        event,
        {
            "plan": plan_for_variant(event.variant_id),
            "plan_status": status,
            "subscription_id": event.object_id,
            "customer_id": event.customer_id,
            "plan_expires_at": event.renews_at,
        },
        reset_usage=True,
        now=now,
    )
    if outcome == ReconcileOutcome.APPLIED:
        payment_store.attach_subscription(
            customer_id=event.customer_id,
            subscription_id=event.object_id,
            subscription_status=event.status,
            period_start=event.created_at,
            period_end=event.renews_at,
        )
    return outcome


def _subscription_changed(event: SubscriptionUpdated | SubscriptionResumed, now: datetime | None) -> ReconcileOutcome:
    user = _subscriber(event, event.object_id)
    if user is None:
        return ReconcileOutcome.IGNORED

    changes: dict[str, Any] = {"plan_status": map_provider_status(event.status)}
    if event.renews_at is not None:
        changes["plan_expires_at"] = event.renews_at
    payment_store.update_subscription_status(event.object_id, event.status, event.renews_at)
    return _update(user, event, changes, now=now)


def _subscription_cancelled(event: SubscriptionCancelled, now: datetime | None) -> ReconcileOutcome:
    user = _subscriber(event, event.object_id)
    if user is None:
        return ReconcileOutcome.IGNORED
    payment_store.update_subscription_status(event.object_id, PlanStatus.CANCELLED.value)
    return _update(user, event, {"plan_status": PlanStatus.CANCELLED}, now=now)


def _subscription_expired(event: SubscriptionExpired, now: datetime | None) -> ReconcileOutcome:
    user = _subscriber(event, event.object_id)
    if user is None:
        return ReconcileOutcome.IGNORED
    payment_store.update_subscription_status(event.object_id, PlanStatus.EXPIRED.value)
    return _update(user, event, {"plan": Plan.FREE, "plan_status": PlanStatus.EXPIRED}, now=now)


def _payment_succeeded(event: PaymentSucceeded, now: datetime | None) -> ReconcileOutcome:
    user = _subscriber(event, event.subscription_id)
    if user is None:
        return ReconcileOutcome.IGNORED
    return _update(user, event, {}, reset_usage=True, now=now)


def _payment_failed(event: PaymentFailed, now: datetime | None) -> ReconcileOutcome:
    user = _subscriber(event, event.subscription_id)
    if user is None:
        return ReconcileOutcome.IGNORED
    return _update(user, event, {"plan_status": PlanStatus.PAST_DUE}, now=now)


_HANDLERS: dict[BillingEventKind, Callable[[Any, datetime | None], ReconcileOutcome]] = {
    BillingEventKind.ORDER_CREATED: _order_created,
    BillingEventKind.SUBSCRIPTION_CREATED: _subscription_created,
    BillingEventKind.SUBSCRIPTION_UPDATED: _subscription_changed,
    BillingEventKind.SUBSCRIPTION_RESUMED: _subscription_changed,
    BillingEventKind.SUBSCRIPTION_CANCELLED: _subscription_cancelled,
    BillingEventKind.SUBSCRIPTION_EXPIRED: _subscription_expired,
    BillingEventKind.PAYMENT_SUCCEEDED: _payment_succeeded,
    BillingEventKind.PAYMENT_FAILED: _payment_failed,
}

_unhandled = set(BillingEventKind) - set(_HANDLERS)
if _unhandled:
    raise RuntimeError(f"Billing event kinds without a handler: {sorted(kind.value for kind in _unhandled)}")


def apply_billing_event(event: BillingEvent, *, now: datetime | None = None) -> ReconcileOutcome:
    """Apply one provider event to the matching account.

    Never raises: failures are logged and reported as ``FAILED`` so the webhook
    can still acknowledge the delivery.
    """
    try:
        return _HANDLERS[event.kind](event, now)
    except Exception:
        logger.exception("billing_event_failed event_key=%s", event.event_key)
        return ReconcileOutcome.FAILED
