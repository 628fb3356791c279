from __future__ import annotations

import os
import sqlite3
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone

from ats_optimizer.core.config import settings

_conn: sqlite3.Connection | None = None
_conn_lock = threading.Lock()

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS users (
        id TEXT PRIMARY KEY,
        email TEXT NOT NULL UNIQUE,
        first_name TEXT NOT NULL,
        last_name TEXT NOT NULL,
        api_key TEXT UNIQUE,
        api_key_created_at TEXT,
        is_admin INTEGER NOT NULL DEFAULT 0,
        plan TEXT NOT NULL,
        plan_status TEXT NOT NULL,
        customer_id TEXT,
        subscription_id TEXT,
        plan_expires_at TEXT,
        resume_scans INTEGER NOT NULL DEFAULT 0,
        profile_scans INTEGER NOT NULL DEFAULT 0,
        usage_reset_at TEXT NOT NULL,
        last_billing_event_key TEXT,
        created_at TEXT NOT NULL
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_users_subscription ON users (subscription_id);",
    """
    CREATE TABLE IF NOT EXISTS analyses (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        kind TEXT NOT NULL,
        status TEXT NOT NULL,
        composite_score INTEGER NOT NULL DEFAULT 0,
        label TEXT NOT NULL,
        payload_json TEXT NOT NULL,
        created_at TEXT NOT NULL
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_analyses_user_kind ON analyses (user_id, kind, created_at);",
    """
    CREATE TABLE IF NOT EXISTS payments (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id TEXT NOT NULL,
        order_id TEXT UNIQUE,
        customer_id TEXT,
        subscription_id TEXT,
        product_name TEXT,
        variant_name TEXT,
        amount INTEGER NOT NULL DEFAULT 0,
        currency TEXT NOT NULL DEFAULT 'USD',
        payment_type TEXT NOT NULL,
        plan TEXT NOT NULL,
        status TEXT NOT NULL,
        subscription_status TEXT,
        current_period_start TEXT,
        current_period_end TEXT,
        created_at TEXT NOT NULL
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_payments_user ON payments (user_id, created_at);",
    """
    CREATE TABLE IF NOT EXISTS billing_event_ledger (
        event_key TEXT PRIMARY KEY,
        event_kind TEXT NOT NULL,
        user_id TEXT NOT NULL,
        applied_at TEXT NOT NULL
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS developer_rate_limit_events (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        client_key TEXT NOT NULL,
        created_at REAL NOT NULL
    );
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_developer_rate_limit_lookup
    ON developer_rate_limit_events (client_key, created_at);
    """,
)

_TABLES = ("users", "analyses", "payments", "billing_event_ledger", "developer_rate_limit_events")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(value: datetime | None) -> str | None:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def from_iso(value: str | None) -> datetime | None:
    if not value:
        return None
    return datetime.fromisoformat(value)


def get_connection() -> sqlite3.Connection:
    global _conn
    with _conn_lock:
        if _conn is not None:
            return _conn

        db_path = settings.database_path
        directory = os.path.dirname(db_path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        _conn = sqlite3.connect(
            db_path,
            check_same_thread=False,
            timeout=5,
            isolation_level=None,
        )
        _conn.row_factory = sqlite3.Row
        _conn.execute("PRAGMA journal_mode=WAL;")
        _conn.execute("PRAGMA synchronous=NORMAL;")
        _conn.execute("PRAGMA busy_timeout=5000;")
        for statement in _SCHEMA:
            _conn.execute(statement)
        return _conn


@contextmanager
def transaction() -> Iterator[sqlite3.Cursor]:
    """Run the enclosed statements in one ``BEGIN IMMEDIATE`` transaction."""
    conn = get_connection()
    with _conn_lock:
        cursor = conn.cursor()
        cursor.execute("BEGIN IMMEDIATE")
        try:
            yield cursor
            conn.commit()
        except Exception:
            conn.rollback()
            raise


def query_all(sql: str, params: tuple = ()) -> list[sqlite3.Row]:
    conn = get_connection()
    with _conn_lock:
        return conn.execute(sql, params).fetchall()


def query_one(sql: str, params: tuple = ()) -> sqlite3.Row | None:
    conn = get_connection()
    with _conn_lock:
        return conn.execute(sql, params).fetchone()


def init_store() -> None:
    get_connection()


def close_store() -> None:
    global _conn
    with _conn_lock:
        if _conn is not None:
            _conn.close()
            _conn = None


def clear_store() -> None:
    conn = get_connection()
    with _conn_lock:
        for table in _TABLES:
            conn.execute(f"DELETE FROM {table}")
        conn.commit()
