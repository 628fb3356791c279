from __future__ import annotations

from datetime import datetime, timezone

from ats_optimizer.core.config.scoring import PlanRules, get_scoring_config
from ats_optimizer.schemas.account import SCAN_ACTIONS, Action, Plan, PlanStatus, UsageCounters, UserAccount


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def is_plan_expired(plan_expires_at: datetime | None, now: datetime | None = None) -> bool:
    if plan_expires_at is None:
        return False
    now = _as_utc(now or datetime.now(timezone.utc))
    return now > _as_utc(plan_expires_at)


def can_perform(
    plan: Plan,
    plan_status: PlanStatus,
    plan_expires_at: datetime | None,
    usage: UsageCounters,
    action: Action,
    *,
    now: datetime | None = None,
    rules: PlanRules | None = None,
) -> bool:
    """Decide whether ``action`` is allowed for the given plan state.

    An elapsed expiry denies everything. The plan status is informational here:
    a cancelled subscription keeps its entitlements until it expires. This is a
    pure predicate; consuming a scan is done by the store after the scan.
    """
    rules = rules or get_scoring_config().plans
    if is_plan_expired(plan_expires_at, now):
        return False

    if action in SCAN_ACTIONS:
        limit = rules.scan_limit(plan)
        if limit is None:
            return True
        return usage.for_action(action) < limit

    return plan in rules.entitlements[action]


def user_can_perform(
    user: UserAccount,
    action: Action,
    *,
    now: datetime | None = None,
    rules: PlanRules | None = None,
) -> bool:
    return can_perform(
        user.plan,
        user.plan_status,
        user.plan_expires_at,
        user.usage,
        action,
        now=now,
        rules=rules,
    )


def denial_message(user: UserAccount, action: Action, *, now: datetime | None = None) -> str:
    if is_plan_expired(user.plan_expires_at, now):
        return "Your plan has expired. Please renew to continue."
    if action == Action.RESUME_SCAN:
        return "Resume scan limit reached for your plan"
    if action == Action.PROFILE_SCAN:
        return "Profile scan limit reached for your plan"
    allowed = get_scoring_config().plans.entitlements[action]
    return f"This feature requires one of the following plans: {', '.join(plan.value for plan in allowed)}"
