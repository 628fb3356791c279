from __future__ import annotations

import time

from ats_optimizer.storage.db import transaction


class DeveloperRateLimitExceeded(Exception):
    pass


def enforce_developer_rate_limit(client_key: str, limit: int, window_seconds: int) -> None:
    """Sliding-window request budget per API key, shared across processes through the store."""
    now = time.time()
    cutoff = now - window_seconds

    with transaction() as cursor:
        cursor.execute("DELETE FROM developer_rate_limit_events WHERE created_at < ?", (cutoff,))
        cursor.execute(
            """
            SELECT COUNT(1)
            FROM developer_rate_limit_events
            WHERE client_key = ? AND created_at >= ?
            """,
            (client_key, cutoff),
        )
        count = int(cursor.fetchone()[0] or 0)
        if count >= limit:
            raise DeveloperRateLimitExceeded

        cursor.execute(
            "INSERT INTO developer_rate_limit_events (client_key, created_at) VALUES (?, ?)",
            (client_key, now),
        )
