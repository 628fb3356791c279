from __future__ import annotations

import html
import logging
import math
import uuid
from datetime import datetime, timezone
from typing import Any

from ats_optimizer.integrations.email import send_upsell_email
from ats_optimizer.integrations.profile_source import ProfileFetchError, fetch_profile
from ats_optimizer.schemas.account import Action, Plan, UserAccount
from ats_optimizer.schemas.analysis import (
    AnalysisStatus,
    ComparisonRecord,
    DocumentKind,
    ProfileAnalysis,
    ProfileFields,
    Suggestion,
)
from ats_optimizer.scoring import compare_profile, optimize_profile, scan_profile
from ats_optimizer.scoring.optimize import ProfileComparison
from ats_optimizer.storage import analyses as analysis_store

from .accounts import ensure_allowed, refresh_account
from .errors import AnalysisNotFound, InvalidInput
from .scan_runner import run_scan
from .visibility import analysis_view

logger = logging.getLogger(__name__)

MANUAL_CONTENT_URL = "manual-content"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _score(analysis: ProfileAnalysis) -> ProfileAnalysis:
    scan = scan_profile(analysis.profile)
    return analysis.model_copy(
        update={
            "facts": scan.facts,
            "composite_score": scan.composite_score,
            "suggestions": scan.suggestions,
        }
    )


def _scan(user: UserAccount, profile_url: str, profile: ProfileFields) -> ProfileAnalysis:
    pending = ProfileAnalysis(
        id=uuid.uuid4().hex,
        user_id=user.id,
        profile_url=profile_url,
        profile=profile,
        created_at=_utc_now(),
    )
    return run_scan(user, pending, _score)


def analyze_profile_url(user: UserAccount, profile_url: str) -> ProfileAnalysis:
    user = refresh_account(user)
    ensure_allowed(user, Action.PROFILE_SCAN)
    try:
        profile = fetch_profile(profile_url)
    except ProfileFetchError as exc:
        raise InvalidInput(
            "Failed to analyze profile. Please ensure the URL is correct and the profile is public."
        ) from exc
    return _scan(user, profile_url, profile)


def analyze_profile_content(
    user: UserAccount,
    content: str,
    *,
    headline: str | None = None,
    summary: str | None = None,
    source: str = MANUAL_CONTENT_URL,
) -> ProfileAnalysis:
    user = refresh_account(user)
    ensure_allowed(user, Action.PROFILE_SCAN)
    profile = ProfileFields(headline=headline or "", summary=summary or content)
    return _scan(user, source, profile)


def get_profile_analysis(user: UserAccount, analysis_id: str) -> ProfileAnalysis:
    analysis = analysis_store.get_analysis(analysis_id, user_id=user.id, kind=DocumentKind.PROFILE)
    if not isinstance(analysis, ProfileAnalysis):
        raise AnalysisNotFound()
    return analysis


def _completed(user: UserAccount, analysis_id: str) -> ProfileAnalysis:
    analysis = get_profile_analysis(user, analysis_id)
    if analysis.status != AnalysisStatus.COMPLETED or analysis.facts is None:
        raise InvalidInput("Analysis is not completed")
    return analysis


def profile_history(user: UserAccount, *, page: int = 1, limit: int = 10) -> dict[str, Any]:
    items, total = analysis_store.list_history(user.id, DocumentKind.PROFILE, page=page, limit=limit)
    return {
        "analyses": items,
        "pagination": {"page": page, "limit": limit, "total": total, "pages": math.ceil(total / limit) if limit else 0},
    }


def optimize_profile_analysis(user: UserAccount, analysis_id: str) -> ProfileAnalysis:
    ensure_allowed(refresh_account(user), Action.OPTIMIZE)
    analysis = _completed(user, analysis_id)
    if analysis.optimized is not None:
        return analysis

    optimized = optimize_profile(analysis.profile, analysis.facts)
    updated = analysis.model_copy(update={"optimized": optimized})
    analysis_store.save_analysis(updated)
    logger.info("profile_optimized analysis_id=%s", analysis.id)
    return updated


def compare_profile_analysis(user: UserAccount, analysis_id: str) -> ProfileComparison:
    ensure_allowed(refresh_account(user), Action.COMPARISON_VIEW)
    analysis = _completed(user, analysis_id)
    if analysis.optimized is None:
        raise InvalidInput("Optimized content not available. Please optimize first.")

    comparison = compare_profile(analysis.profile, analysis.facts, analysis.composite_score, analysis.optimized)
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


# Report


def improvement_tips(suggestions: list[Suggestion]) -> list[dict[str, str]]:
    return [
        {
            "area": suggestion.category.title(),
            "tip": suggestion.description,
            "example": suggestion.example or "",
        }
        for suggestion in suggestions
    ]


def score_improvements(comparison: ComparisonRecord | None) -> dict[str, int] | None:
    if comparison is None:
        return None
    diff = comparison.after_score - comparison.before_score
    if diff == 0:
        return None
    return {"before": comparison.before_score, "after": comparison.after_score, "improved_by": diff}


def _report_html(analysis: ProfileAnalysis, tips: list[dict[str, str]], improvements: dict[str, int] | None) -> str:
    esc = html.escape
    scores = analysis.facts.sub_scores() if analysis.facts else {}
    parts = ["<h2>LinkedIn Profile Analysis Report</h2>", "<ul>"]
    for category, score in scores.items():
        parts.append(f"<li><strong>{esc(category.title())} Score:</strong> {score}</li>")
    parts.append(f"<li><strong>Optimization Score:</strong> {analysis.composite_score}</li>")
    parts.append("</ul>")

    if improvements:
        sign = "+" if improvements["improved_by"] > 0 else ""
        parts.append("<h3>Score Improvement</h3>")
        parts.append(
            "<ul><li>"
            f"<strong>Before:</strong> {improvements['before']} <br/>"
            f"<strong>After:</strong> {improvements['after']} <br/>"
            f"<strong>Improved by:</strong> {sign}{improvements['improved_by']}"
            "</li></ul>"
        )

    parts.append("<h3>Improvement Tips</h3>")
    parts.append("<ul>")
    for tip in tips:
        parts.append(
            f"<li><strong>{esc(tip['area'])}:</strong> {esc(tip['tip'])}<br/><em>{esc(tip['example'])}</em></li>"
        )
    parts.append("</ul>")

    optimized = analysis.optimized
    if optimized is not None and (optimized.headline or optimized.summary or optimized.skills_to_add):
        parts.append("<h3>Optimized Content Suggestions</h3>")
        parts.append("<ul>")
        if optimized.headline:
            parts.append(f"<li><strong>Headline:</strong> {esc(optimized.headline)}</li>")
        if optimized.summary:
            parts.append(f"<li><strong>Summary:</strong> {esc(optimized.summary)}</li>")
        if optimized.skills_to_add:
            parts.append(f"<li><strong>Skills to Add:</strong> {esc(', '.join(optimized.skills_to_add))}</li>")
        parts.append("</ul>")
    return "\n".join(parts)


def profile_report(user: UserAccount) -> dict[str, Any]:
    """Build the report for the user's most recent completed profile analysis."""
    analysis = analysis_store.latest_analysis(user.id, DocumentKind.PROFILE)
    if not isinstance(analysis, ProfileAnalysis):
        raise AnalysisNotFound("No analysis found for user.")

    if user.plan == Plan.FREE:
        send_upsell_email(
            recipient=user.email,
            first_name=user.first_name,
            score=analysis.composite_score,
            analysis_id=analysis.id,
        )

    tips = improvement_tips(analysis.suggestions)
    improvements = score_improvements(analysis.comparison)
    view = analysis_view(analysis)
    scores = dict(analysis.facts.sub_scores()) if analysis.facts else {}
    scores["optimization"] = analysis.composite_score
    return {
        "generated_at": _utc_now().isoformat(),
        "analysis_id": analysis.id,
        "user_id": analysis.user_id,
        "profile_url": analysis.profile_url,
        "scores": scores,
        "suggestions": view["suggestions"],
        "improvement_tips": tips,
        "optimized_content": view["optimized"] or {},
        "comparison": view["comparison"] or {},
        "score_improvements": improvements,
        "exportable": {"summary": _report_html(analysis, tips, improvements)},
    }
