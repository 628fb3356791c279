from __future__ import annotations

import csv
import io
import logging
import math
from datetime import datetime
from typing import Any

from ats_optimizer.schemas.account import Plan, PlanStatus, UserAccount
from ats_optimizer.schemas.analysis import DocumentKind
from ats_optimizer.storage import analyses as analysis_store
from ats_optimizer.storage import payments as payment_store
from ats_optimizer.storage import users as user_store
from ats_optimizer.storage.db import from_iso, to_iso

from .errors import InvalidInput, ServiceError

logger = logging.getLogger(__name__)

USER_EXPORT_HEADERS = ["Email", "First Name", "Last Name", "Plan", "Plan Status", "Created At"]
PAYMENT_EXPORT_HEADERS = ["User Email", "Amount", "Plan", "Status", "Created At"]


class UserNotFound(ServiceError):
    def __init__(self) -> None:
        super().__init__("User not found", status_code=404)


def _pagination(page: int, limit: int, total: int) -> dict[str, int]:
    return {"page": page, "limit": limit, "total": total, "pages": math.ceil(total / limit) if limit else 0}


def dashboard(now: datetime | None = None) -> dict[str, Any]:
    user_stats = user_store.user_stats(now)
    analysis_stats = analysis_store.analysis_stats(now)
    revenue = payment_store.revenue_stats(now)
    recent_users, _ = user_store.list_users(page=1, limit=10)
    recent_payments, _ = payment_store.list_payments(status="completed", page=1, limit=10)
    totals = analysis_stats["totals"]
    return {
        "users": {
            "total": user_stats["total_users"],
            "new_this_month": user_stats["new_users_this_month"],
            "active_subscriptions": user_stats["active_subscriptions"],
            "plan_distribution": user_stats["plan_distribution"],
        },
        "analyses": {
            "resume_total": totals.get(DocumentKind.RESUME.value, 0),
            "profile_total": totals.get(DocumentKind.PROFILE.value, 0),
            "total_processed": sum(totals.values()),
            "daily": analysis_stats["daily"],
        },
        "revenue": {
            "total": revenue["total_revenue"],
            "monthly": revenue["revenue_this_month"],
        },
        "recent": {
            "users": [user.public_view() for user in recent_users],
            "payments": recent_payments,
        },
    }


def list_users(*, search: str | None, plan: Plan | None, page: int, limit: int) -> dict[str, Any]:
    users, total = user_store.list_users(search=search, plan=plan, page=page, limit=limit)
    return {"users": [user.public_view() for user in users], "pagination": _pagination(page, limit, total)}


def _require_user(user_id: str) -> UserAccount:
    user = user_store.get_user(user_id)
    if user is None:
        raise UserNotFound()
    return user


def user_detail(user_id: str) -> dict[str, Any]:
    user = _require_user(user_id)
    resume_analyses, _ = analysis_store.list_history(user.id, DocumentKind.RESUME, limit=10)
    profile_analyses, _ = analysis_store.list_history(user.id, DocumentKind.PROFILE, limit=10)
    return {
        "user": user.public_view(),
        "activity": {
            "resume_analyses": resume_analyses,
            "profile_analyses": profile_analyses,
            "payments": payment_store.list_user_payments(user.id, limit=10),
        },
    }


def override_plan(
    user_id: str,
    *,
    plan: Plan | None,
    plan_status: PlanStatus | None,
    plan_expires_at: datetime | None,
    admin: UserAccount,
) -> UserAccount:
    """Manually set plan fields. Usage counters are reset, the same as a billing-period renewal."""
    user = _require_user(user_id)
    changes: dict[str, Any] = {}
    if plan is not None:
        changes["plan"] = plan
    if plan_status is not None:
        changes["plan_status"] = plan_status
    if plan_expires_at is not None:
        changes["plan_expires_at"] = plan_expires_at

    user_store.apply_account_update(user.id, changes, reset_usage=True)
    logger.info(
        "plan_override user_id=%s admin_id=%s fields=%s",
        user.id,
        admin.id,
        ",".join(sorted(changes)) or "-",
    )
    return _require_user(user.id)


def list_payments(*, status: str | None, page: int, limit: int) -> dict[str, Any]:
    payments, total = payment_store.list_payments(status=status, page=page, limit=limit)
    return {"payments": payments, "pagination": _pagination(page, limit, total)}


def _within(created_at: datetime | None, start: datetime | None, end: datetime | None) -> bool:
    if start is None or end is None or created_at is None:
        return True
    return from_iso(to_iso(start)) <= from_iso(to_iso(created_at)) <= from_iso(to_iso(end))


def export_csv(export_type: str, *, start: datetime | None = None, end: datetime | None = None) -> tuple[str, str]:
    """Render users or payments as CSV. Returns ``(file_name, csv_text)``."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")

    if export_type == "users":
        writer.writerow(USER_EXPORT_HEADERS)
        for user in user_store.all_users():
            if not _within(user.created_at, start, end):
                continue
            writer.writerow(
                [
                    user.email,
                    user.first_name,
                    user.last_name,
                    user.plan.value,
                    user.plan_status.value,
                    user.created_at.isoformat(),
                ]
            )
        file_name = "users-export.csv"
    elif export_type == "payments":
        writer.writerow(PAYMENT_EXPORT_HEADERS)
        for payment in payment_store.all_payments():
            if not _within(from_iso(payment["created_at"]), start, end):
                continue
            writer.writerow(
                [
                    payment.get("user_email") or "N/A",
                    payment["amount"],
                    payment["plan"],
                    payment["status"],
                    payment["created_at"],
                ]
            )
        file_name = "payments-export.csv"
    else:
        raise InvalidInput("Invalid export type")

    return file_name, buffer.getvalue()
