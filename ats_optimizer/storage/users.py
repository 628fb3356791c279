from __future__ import annotations

import logging
import secrets
import sqlite3
import uuid
from datetime import datetime
from enum import Enum
from typing import Any

from ats_optimizer.schemas.account import Plan, PlanStatus, UsageCounters, UserAccount
from ats_optimizer.schemas.analysis import DocumentKind

from .db import from_iso, query_all, query_one, to_iso, transaction, utc_now

logger = logging.getLogger(__name__)

_USER_COLUMNS = """
    id, email, first_name, last_name, api_key, api_key_created_at, is_admin, plan, plan_status,
    customer_id, subscription_id, plan_expires_at, resume_scans, profile_scans, usage_reset_at,
    last_billing_event_key, created_at
"""

# Columns a billing event or an admin override may rewrite.
_UPDATABLE_COLUMNS = frozenset({"plan", "plan_status", "customer_id", "subscription_id", "plan_expires_at"})

_COUNTER_COLUMNS = {
    DocumentKind.RESUME: "resume_scans",
    DocumentKind.PROFILE: "profile_scans",
}


class DuplicateEmailError(ValueError):
    pass


def generate_api_key() -> str:
    return f"ats_{secrets.token_hex(32)}"


def _row_to_user(row: sqlite3.Row) -> UserAccount:
    return UserAccount(
        id=row["id"],
        email=row["email"],
        first_name=row["first_name"],
        last_name=row["last_name"],
        api_key=row["api_key"],
        api_key_created_at=from_iso(row["api_key_created_at"]),
        is_admin=bool(row["is_admin"]),
        plan=Plan(row["plan"]),
        plan_status=PlanStatus(row["plan_status"]),
        customer_id=row["customer_id"],
        subscription_id=row["subscription_id"],
        plan_expires_at=from_iso(row["plan_expires_at"]),
        usage=UsageCounters(
            resume_scans=row["resume_scans"],
            profile_scans=row["profile_scans"],
            reset_at=from_iso(row["usage_reset_at"]),
        ),
        last_billing_event_key=row["last_billing_event_key"],
        created_at=from_iso(row["created_at"]),
    )


def _column_value(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return to_iso(value)
    return value


def create_user(*, email: str, first_name: str, last_name: str, is_admin: bool = False) -> UserAccount:
    now_iso = to_iso(utc_now())
    user_id = uuid.uuid4().hex
    try:
        with transaction() as cursor:
            cursor.execute(
                f"""
                INSERT INTO users ({_USER_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    user_id,
                    email.strip().lower(),
                    first_name,
                    last_name,
                    generate_api_key(),
                    now_iso,
                    1 if is_admin else 0,
                    Plan.FREE.value,
                    PlanStatus.ACTIVE.value,
                    None,
                    None,
                    None,
                    0,
                    0,
                    now_iso,
                    None,
                    now_iso,
                ),
            )
    except sqlite3.IntegrityError as exc:
        raise DuplicateEmailError(email) from exc

    user = get_user(user_id)
    assert user is not None
    return user


def _get_one(where: str, value: Any) -> UserAccount | None:
    row = query_one(f"SELECT {_USER_COLUMNS} FROM users WHERE {where} = ?", (value,))
    return _row_to_user(row) if row else None


def get_user(user_id: str) -> UserAccount | None:
    return _get_one("id", user_id)


def get_user_by_email(email: str) -> UserAccount | None:
    return _get_one("email", email.strip().lower())


def get_user_by_api_key(api_key: str) -> UserAccount | None:
    if not api_key:
        return None
    return _get_one("api_key", api_key)


def get_user_by_subscription(subscription_id: str) -> UserAccount | None:
    if not subscription_id:
        return None
    return _get_one("subscription_id", subscription_id)


def rotate_api_key(user_id: str) -> str:
    api_key = generate_api_key()
    with transaction() as cursor:
        cursor.execute(
            "UPDATE users SET api_key = ?, api_key_created_at = ? WHERE id = ?",
            (api_key, to_iso(utc_now()), user_id),
        )
    return api_key


def reset_usage_if_new_period(user_id: str, now: datetime | None = None) -> bool:
    """Zero the counters when the stored reset stamp is from an earlier calendar month (UTC)."""
    now_iso = to_iso(now or utc_now())
    month = now_iso[:7]
    with transaction() as cursor:
        cursor.execute(
            """
            UPDATE users
            SET resume_scans = 0, profile_scans = 0, usage_reset_at = ?
            WHERE id = ? AND substr(usage_reset_at, 1, 7) < ?
            """,
            (now_iso, user_id, month),
        )
        reset = cursor.rowcount > 0
    if reset:
        logger.info("usage_period_reset user_id=%s month=%s", user_id, month)
    return reset


def consume_scan(user_id: str, kind: DocumentKind, limit: int | None) -> bool:
    """Increment the scan counter for ``kind``; fails when the counter already reached ``limit``."""
    column = _COUNTER_COLUMNS[kind]
    with transaction() as cursor:
        if limit is None:
            cursor.execute(f"UPDATE users SET {column} = {column} + 1 WHERE id = ?", (user_id,))
        else:
            cursor.execute(
                f"UPDATE users SET {column} = {column} + 1 WHERE id = ? AND {column} < ?",
                (user_id, limit),
            )
        return cursor.rowcount > 0


def apply_account_update(
    user_id: str,
    changes: dict[str, Any],
    *,
    reset_usage: bool = False,
    event_key: str | None = None,
    event_kind: str | None = None,
    dedupe: bool = False,
    now: datetime | None = None,
) -> bool:
    """Write plan fields, optionally zero counters, and record the event in one transaction.

    With ``dedupe`` the event key goes through the ledger first; a key already
    present leaves the account untouched and returns False.
    """
    unknown = set(changes) - _UPDATABLE_COLUMNS
    if unknown:
        raise ValueError(f"Unsupported account fields: {sorted(unknown)}")
    if dedupe and not event_key:
        raise ValueError("A deduplicated update needs an event key.")

    now_iso = to_iso(now or utc_now())
    assignments = [f"{column} = ?" for column in changes]
    params: list[Any] = [_column_value(value) for value in changes.values()]
    if reset_usage:
        assignments.append("resume_scans = 0")
        assignments.append("profile_scans = 0")
        assignments.append("usage_reset_at = ?")
        params.append(now_iso)
    if event_key:
        assignments.append("last_billing_event_key = ?")
        params.append(event_key)
    if not assignments:
        return True

    with transaction() as cursor:
        if dedupe:
            cursor.execute(
                """
                INSERT OR IGNORE INTO billing_event_ledger (event_key, event_kind, user_id, applied_at)
                VALUES (?, ?, ?, ?)
                """,
                (event_key, event_kind or "", user_id, now_iso),
            )
            if cursor.rowcount == 0:
                return False
        cursor.execute(f"UPDATE users SET {', '.join(assignments)} WHERE id = ?", (*params, user_id))
        return cursor.rowcount > 0


def is_event_applied(event_key: str) -> bool:
    return query_one("SELECT 1 FROM billing_event_ledger WHERE event_key = ?", (event_key,)) is not None


def list_users(
    *,
    search: str | None = None,
    plan: Plan | None = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[UserAccount], int]:
    clauses: list[str] = []
    params: list[Any] = []
    if search:
        pattern = f"%{search.strip().lower()}%"
        clauses.append("(lower(email) LIKE ? OR lower(first_name) LIKE ? OR lower(last_name) LIKE ?)")
        params.extend([pattern, pattern, pattern])
    if plan is not None:
        clauses.append("plan = ?")
        params.append(plan.value)
    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""

    total_row = query_one(f"SELECT COUNT(1) FROM users {where}", tuple(params))
    total = int(total_row[0] or 0) if total_row else 0
    offset = max(0, page - 1) * limit
    rows = query_all(
        f"SELECT {_USER_COLUMNS} FROM users {where} ORDER BY created_at DESC LIMIT ? OFFSET ?",
        (*params, limit, offset),
    )
    return [_row_to_user(row) for row in rows], total


def all_users() -> list[UserAccount]:
    rows = query_all(f"SELECT {_USER_COLUMNS} FROM users ORDER BY created_at DESC")
    return [_row_to_user(row) for row in rows]


def user_stats(now: datetime | None = None) -> dict[str, Any]:
    month_start = to_iso(now or utc_now())[:7]
    total_row = query_one("SELECT COUNT(1) FROM users")
    new_row = query_one("SELECT COUNT(1) FROM users WHERE substr(created_at, 1, 7) = ?", (month_start,))
    active_row = query_one(
        "SELECT COUNT(1) FROM users WHERE plan <> ? AND plan_status = ?",
        (Plan.FREE.value, PlanStatus.ACTIVE.value),
    )
    distribution = {plan.value: 0 for plan in Plan}
    for row in query_all("SELECT plan, COUNT(1) AS n FROM users GROUP BY plan"):
        distribution[row["plan"]] = int(row["n"])
    return {
        "total_users": int(total_row[0] or 0) if total_row else 0,
        "new_users_this_month": int(new_row[0] or 0) if new_row else 0,
        "active_subscriptions": int(active_row[0] or 0) if active_row else 0,
        "plan_distribution": distribution,
    }
