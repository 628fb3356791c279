from __future__ import annotations

from typing import Any

from ats_optimizer.core.config.scoring import get_scoring_config
from ats_optimizer.schemas.account import Plan, UserAccount
from ats_optimizer.schemas.analysis import ProfileAnalysis, ResumeAnalysis

UPGRADE_MESSAGE = "Upgrade to Basic or Pro to see full suggestions & tips!"


def analysis_view(analysis: ResumeAnalysis | ProfileAnalysis, *, include_source: bool = True) -> dict[str, Any]:
    view = analysis.model_dump(mode="json")
    view["analysis"] = view.pop("facts")
    if not include_source:
        view.pop("source_text", None)
    return view


def is_limited_viewer(user: UserAccount) -> bool:
    return user.plan == Plan.FREE


def redact_for_plan(user: UserAccount, view: dict[str, Any]) -> dict[str, Any]:
    """Trim an analysis or report view for free accounts.

    Keeps the first suggestions, keywords and improvement tips and marks the
    view as locked. Paid accounts get the view back unchanged with ``locked``
    set to False.
    """
    if not is_limited_viewer(user):
        view["locked"] = False
        return view

    preview = get_scoring_config().plans.free_preview
    if isinstance(view.get("suggestions"), list):
        view["suggestions"] = view["suggestions"][: preview.suggestions]
    if isinstance(view.get("improvement_tips"), list):
        view["improvement_tips"] = view["improvement_tips"][: preview.improvement_tips]

    keywords = (view.get("analysis") or {}).get("keywords")
    if isinstance(keywords, dict):
        for key in ("found", "missing"):
            if isinstance(keywords.get(key), list):
                keywords[key] = keywords[key][: preview.keywords]

    view["locked"] = True
    view["message"] = UPGRADE_MESSAGE
    return view
