from __future__ import annotations

import logging
import math
import uuid
from datetime import datetime, timezone
from typing import Any

from ats_optimizer.core.config import settings
from ats_optimizer.parsing import DocumentExtractionError, detect_file_type, extract_text
from ats_optimizer.schemas.account import Action, UserAccount
from ats_optimizer.schemas.analysis import AnalysisStatus, ComparisonRecord, DocumentKind, ResumeAnalysis
from ats_optimizer.scoring import compare_resume, optimize_resume, scan_resume_text
from ats_optimizer.scoring.optimize import ResumeComparison
from ats_optimizer.storage import analyses as analysis_store

from .accounts import ensure_allowed, refresh_account
from .errors import AnalysisNotFound, ExtractionFailed, InvalidInput
from .scan_runner import run_scan

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _score(analysis: ResumeAnalysis) -> ResumeAnalysis:
    scan = scan_resume_text(analysis.source_text)
    return analysis.model_copy(
        update={
            "facts": scan.facts,
            "composite_score": scan.composite_score,
            "suggestions": scan.suggestions,
        }
    )


def _scan_text(user: UserAccount, text: str, *, file_name: str, file_type: str) -> ResumeAnalysis:
    pending = ResumeAnalysis(
        id=uuid.uuid4().hex,
        user_id=user.id,
        source_text=text,
        file_name=file_name,
        file_type=file_type,
        created_at=_utc_now(),
    )
    return run_scan(user, pending, _score)


def analyze_resume_text(user: UserAccount, text: str, *, file_name: str = "api-upload.txt") -> ResumeAnalysis:
    user = refresh_account(user)
    ensure_allowed(user, Action.RESUME_SCAN)
    return _scan_text(user, text, file_name=file_name, file_type="txt")


def analyze_resume_upload(
    user: UserAccount,
    data: bytes,
    *,
    file_name: str,
    content_type: str | None = None,
) -> ResumeAnalysis:
    user = refresh_account(user)
    ensure_allowed(user, Action.RESUME_SCAN)
    if not data:
        raise InvalidInput("No file uploaded")
    if len(data) > settings.max_upload_bytes:
        raise InvalidInput("File too large")

    try:
        file_type = detect_file_type(file_name, content_type)
    except DocumentExtractionError as exc:
        raise InvalidInput(str(exc)) from exc

    try:
        document = extract_text(data, file_name, content_type)
    except DocumentExtractionError as exc:
        logger.info("resume_extraction_failed user_id=%s reason=%s", user.id, exc)
        analysis_store.create_analysis(
            ResumeAnalysis(
                id=uuid.uuid4().hex,
                user_id=user.id,
                status=AnalysisStatus.FAILED,
                source_text="",
                file_name=file_name,
                file_type=file_type,
                created_at=_utc_now(),
            )
        )
        raise ExtractionFailed(str(exc)) from exc

    return _scan_text(user, document.text, file_name=document.file_name, file_type=document.file_type)


def get_resume_analysis(user: UserAccount, analysis_id: str) -> ResumeAnalysis:
    analysis = analysis_store.get_analysis(analysis_id, user_id=user.id, kind=DocumentKind.RESUME)
    if not isinstance(analysis, ResumeAnalysis):
        raise AnalysisNotFound()
    return analysis


def _completed(user: UserAccount, analysis_id: str) -> ResumeAnalysis:
    analysis = get_resume_analysis(user, analysis_id)
    if analysis.status != AnalysisStatus.COMPLETED or analysis.facts is None:
        raise InvalidInput("Analysis is not completed")
    return analysis


def resume_history(user: UserAccount, *, page: int = 1, limit: int = 10) -> dict[str, Any]:
    items, total = analysis_store.list_history(user.id, DocumentKind.RESUME, page=page, limit=limit)
    return {
        "analyses": items,
        "pagination": {"page": page, "limit": limit, "total": total, "pages": math.ceil(total / limit) if limit else 0},
    }


def optimize_resume_analysis(user: UserAccount, analysis_id: str) -> ResumeAnalysis:
    ensure_allowed(refresh_account(user), Action.OPTIMIZE)
    analysis = _completed(user, analysis_id)
    if analysis.optimized is not None:
        return analysis

    optimized = optimize_resume(analysis.source_text, analysis.facts)
    updated = analysis.model_copy(update={"optimized": optimized})
    analysis_store.save_analysis(updated)
    logger.info("resume_optimized analysis_id=%s", analysis.id)
    return updated


def export_resume(user: UserAccount, analysis_id: str, *, use_optimized: bool = False) -> tuple[str, str]:
    """Return ``(file_name, text)`` for download; optimized text when requested and available."""
    ensure_allowed(refresh_account(user), Action.CONTENT_EXPORT)
    analysis = get_resume_analysis(user, analysis_id)
    content = analysis.source_text
    if use_optimized and analysis.optimized is not None:
        content = analysis.optimized.text
    return f"optimized-cv-{analysis.id}.txt", content


def compare_resume_analysis(user: UserAccount, analysis_id: str) -> ResumeComparison:
    ensure_allowed(refresh_account(user), Action.COMPARISON_VIEW)
    analysis = _completed(user, analysis_id)
    if analysis.optimized is None:
        raise InvalidInput("Optimized version not available. Please optimize first.")

    comparison = compare_resume(analysis.facts, analysis.composite_score, analysis.optimized)
    analysis_store.save_analysis(
        analysis.model_copy(
            update={
                "comparison": ComparisonRecord(
                    before_score=comparison.before_score,
                    after_score=comparison.after_score,
                    improvements=comparison.improvements,
                )
            }
        )
    )
    return comparison
