from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Union

from ats_optimizer.schemas.analysis import AnalysisStatus, DocumentKind, ProfileAnalysis, ResumeAnalysis

from .db import query_all, query_one, to_iso, transaction, utc_now

StoredAnalysis = Union[ResumeAnalysis, ProfileAnalysis]


def _label(analysis: StoredAnalysis) -> str:
    if isinstance(analysis, ResumeAnalysis):
        return analysis.file_name
    return analysis.profile_url


def _from_payload(kind: str, payload_json: str) -> StoredAnalysis:
    if kind == DocumentKind.RESUME.value:
        return ResumeAnalysis.model_validate_json(payload_json)
    return ProfileAnalysis.model_validate_json(payload_json)


def create_analysis(analysis: StoredAnalysis) -> StoredAnalysis:
    with transaction() as cursor:
        cursor.execute(
            """
            INSERT INTO analyses (id, user_id, kind, status, composite_score, label, payload_json, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                analysis.id,
                analysis.user_id,
                analysis.kind.value,
                analysis.status.value,
                analysis.composite_score,
                _label(analysis),
                analysis.model_dump_json(),
                to_iso(analysis.created_at),
            ),
        )
    return analysis


def save_analysis(analysis: StoredAnalysis) -> StoredAnalysis:
    with transaction() as cursor:
        cursor.execute(
            """
            UPDATE analyses
            SET status = ?, composite_score = ?, label = ?, payload_json = ?
            WHERE id = ?
            """,
            (
                analysis.status.value,
                analysis.composite_score,
                _label(analysis),
                analysis.model_dump_json(),
                analysis.id,
            ),
        )
    return analysis


def mark_failed(analysis: StoredAnalysis) -> StoredAnalysis:
    return save_analysis(analysis.model_copy(update={"status": AnalysisStatus.FAILED}))


def get_analysis(analysis_id: str, *, user_id: str, kind: DocumentKind) -> StoredAnalysis | None:
    row = query_one(
        "SELECT kind, payload_json FROM analyses WHERE id = ? AND user_id = ? AND kind = ?",
        (analysis_id, user_id, kind.value),
    )
    if not row:
        return None
    return _from_payload(row["kind"], row["payload_json"])


def latest_analysis(user_id: str, kind: DocumentKind) -> StoredAnalysis | None:
    row = query_one(
        """
        SELECT kind, payload_json FROM analyses
        WHERE user_id = ? AND kind = ? AND status = ?
        ORDER BY created_at DESC LIMIT 1
        """,
        (user_id, kind.value, AnalysisStatus.COMPLETED.value),
    )
    if not row:
        return None
    return _from_payload(row["kind"], row["payload_json"])


def list_history(
    user_id: str,
    kind: DocumentKind,
    *,
    page: int = 1,
    limit: int = 10,
) -> tuple[list[dict[str, Any]], int]:
    total_row = query_one(
        "SELECT COUNT(1) FROM analyses WHERE user_id = ? AND kind = ?",
        (user_id, kind.value),
    )
    total = int(total_row[0] or 0) if total_row else 0
    offset = max(0, page - 1) * limit
    rows = query_all(
        """
        SELECT id, status, composite_score, label, created_at FROM analyses
        WHERE user_id = ? AND kind = ?
        ORDER BY created_at DESC LIMIT ? OFFSET ?
        """,
        (user_id, kind.value, limit, offset),
    )
    items = [
        {
            "id": row["id"],
            "status": row["status"],
            "composite_score": int(row["composite_score"]),
            "label": row["label"],
            "created_at": row["created_at"],
        }
        for row in rows
    ]
    return items, total


def analysis_stats(now: datetime | None = None, days: int = 30) -> dict[str, Any]:
    since = to_iso((now or utc_now()) - timedelta(days=days))
    counts = {kind.value: 0 for kind in DocumentKind}
    for row in query_all("SELECT kind, COUNT(1) AS n FROM analyses GROUP BY kind"):
        counts[row["kind"]] = int(row["n"])
    daily = [
        {"date": row["day"], "kind": row["kind"], "count": int(row["n"])}
        for row in query_all(
            """
            SELECT substr(created_at, 1, 10) AS day, kind, COUNT(1) AS n FROM analyses
            WHERE created_at >= ?
            GROUP BY day, kind ORDER BY day
            """,
            (since,),
        )
    ]
    return {"totals": counts, "daily": daily}
