from __future__ import annotations

import sqlite3
from datetime import datetime
from typing import Any

from .db import query_all, query_one, to_iso, transaction, utc_now

_PAYMENT_COLUMNS = """
    p.id, p.user_id, p.order_id, p.customer_id, p.subscription_id, p.product_name, p.variant_name,
    p.amount, p.currency, p.payment_type, p.plan, p.status, p.subscription_status,
    p.current_period_start, p.current_period_end, p.created_at
"""


def _row_to_payment(row: sqlite3.Row) -> dict[str, Any]:
    payment = {key: row[key] for key in row.keys()}
    payment["amount"] = int(payment.get("amount") or 0)
    return payment


def record_order(
    *,
    user_id: str,
    order_id: str,
    customer_id: str,
    product_name: str,
    variant_name: str,
    amount: int,
    currency: str,
    payment_type: str,
    plan: str,
) -> bool:
    """Insert a completed order; a repeated order id is ignored."""
    with transaction() as cursor:
        cursor.execute(
            """
            INSERT OR IGNORE INTO payments (
                user_id, order_id, customer_id, product_name, variant_name, amount, currency,
                payment_type, plan, status, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, 'completed', ?)
            """,
            (
                user_id,
                order_id,
                customer_id,
                product_name,
                variant_name,
                amount,
                currency,
                payment_type,
                plan,
                to_iso(utc_now()),
            ),
        )
        return cursor.rowcount > 0


def attach_subscription(
    *,
    customer_id: str,
    subscription_id: str,
    subscription_status: str,
    period_start: datetime | None,
    period_end: datetime | None,
) -> None:
    with transaction() as cursor:
        cursor.execute(
            """
            UPDATE payments
            SET subscription_id = ?, subscription_status = ?, current_period_start = ?, current_period_end = ?
            WHERE customer_id = ? AND payment_type = 'subscription'
            """,
            (subscription_id, subscription_status, to_iso(period_start), to_iso(period_end), customer_id),
        )


def update_subscription_status(subscription_id: str, subscription_status: str, period_end: datetime | None = None) -> None:
    with transaction() as cursor:
        if period_end is None:
            cursor.execute(
                "UPDATE payments SET subscription_status = ? WHERE subscription_id = ?",
                (subscription_status, subscription_id),
            )
        else:
            cursor.execute(
                "UPDATE payments SET subscription_status = ?, current_period_end = ? WHERE subscription_id = ?",
                (subscription_status, to_iso(period_end), subscription_id),
            )


def list_user_payments(user_id: str, limit: int = 20) -> list[dict[str, Any]]:
    rows = query_all(
        f"SELECT {_PAYMENT_COLUMNS} FROM payments p WHERE p.user_id = ? ORDER BY p.created_at DESC LIMIT ?",
        (user_id, limit),
    )
    return [_row_to_payment(row) for row in rows]


def list_payments(*, status: str | None = None, page: int = 1, limit: int = 20) -> tuple[list[dict[str, Any]], int]:
    where = "WHERE p.status = ?" if status else ""
    params: tuple = (status,) if status else ()
    total_row = query_one(f"SELECT COUNT(1) FROM payments p {where}", params)
    total = int(total_row[0] or 0) if total_row else 0
    offset = max(0, page - 1) * limit
    rows = query_all(
        f"""
        SELECT {_PAYMENT_COLUMNS}, u.email AS user_email
        FROM payments p LEFT JOIN users u ON u.id = p.user_id
        {where}
        ORDER BY p.created_at DESC LIMIT ? OFFSET ?
        """,
        (*params, limit, offset),
    )
    return [_row_to_payment(row) for row in rows], total


def all_payments() -> list[dict[str, Any]]:
    rows = query_all(
        f"""
        SELECT {_PAYMENT_COLUMNS}, u.email AS user_email
        FROM payments p LEFT JOIN users u ON u.id = p.user_id
        ORDER BY p.created_at DESC
        """
    )
    return [_row_to_payment(row) for row in rows]


def revenue_stats(now: datetime | None = None) -> dict[str, int]:
    month = to_iso(now or utc_now())[:7]
    total_row = query_one("SELECT COALESCE(SUM(amount), 0) FROM payments WHERE status = 'completed'")
    month_row = query_one(
        "SELECT COALESCE(SUM(amount), 0) FROM payments WHERE status = 'completed' AND substr(created_at, 1, 7) = ?",
        (month,),
    )
    return {
        "total_revenue": int(total_row[0] or 0) if total_row else 0,
        "revenue_this_month": int(month_row[0] or 0) if month_row else 0,
    }
