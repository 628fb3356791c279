from fastapi import APIRouter, Depends, Query, Request

from ats_optimizer.core.rate_limit import rate_limit
from ats_optimizer.core.security import get_current_user
from ats_optimizer.schemas.account import UserAccount
from ats_optimizer.schemas.analysis import ProfileAnalysis
from ats_optimizer.schemas.api import ProfileContentRequest, ProfileUrlRequest
from ats_optimizer.services import profile_service
from ats_optimizer.services.errors import ServiceError
from ats_optimizer.services.visibility import analysis_view, redact_for_plan

from .errors import raise_service_error

router = APIRouter()


def _scan_view(user: UserAccount, analysis: ProfileAnalysis) -> dict:
    view = {
        "analysis_id": analysis.id,
        "composite_score": analysis.composite_score,
        "analysis": analysis.facts.model_dump(mode="json") if analysis.facts else {},
        "suggestions": [item.model_dump(mode="json") for item in analysis.suggestions],
        "processing_ms": analysis.processing_ms,
    }
    return redact_for_plan(user, view)


@router.post("/profile/analyze")
@rate_limit()
def analyze_profile(request: Request, payload: ProfileUrlRequest, user: UserAccount = Depends(get_current_user)):
    _ = request
    try:
        analysis = profile_service.analyze_profile_url(user, payload.profile_url)
    except ServiceError as exc:
        raise_service_error(exc)
    return _scan_view(user, analysis)


@router.post("/profile/analyze-content")
@rate_limit()
def analyze_profile_content(
    request: Request,
    payload: ProfileContentRequest,
    user: UserAccount = Depends(get_current_user),
):
    _ = request
    try:
        analysis = profile_service.analyze_profile_content(
            user,
            payload.content,
            headline=payload.headline,
            summary=payload.summary,
        )
    except ServiceError as exc:
        raise_service_error(exc)
    return _scan_view(user, analysis)


@router.get("/profile/analyses/{analysis_id}")
def get_profile_analysis(analysis_id: str, user: UserAccount = Depends(get_current_user)):
    try:
        analysis = profile_service.get_profile_analysis(user, analysis_id)
    except ServiceError as exc:
        raise_service_error(exc)
    return redact_for_plan(user, analysis_view(analysis))


@router.get("/profile/history")
def profile_history(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    user: UserAccount = Depends(get_current_user),
):
    return profile_service.profile_history(user, page=page, limit=limit)


@router.post("/profile/optimize/{analysis_id}")
def optimize_profile(analysis_id: str, user: UserAccount = Depends(get_current_user)):
    try:
        analysis = profile_service.optimize_profile_analysis(user, analysis_id)
    except ServiceError as exc:
        raise_service_error(exc)
    return {"optimized_content": analysis.optimized.model_dump(mode="json")}


@router.get("/profile/compare/{analysis_id}")
def compare_profile(analysis_id: str, user: UserAccount = Depends(get_current_user)):
    try:
        return profile_service.compare_profile_analysis(user, analysis_id)
    except ServiceError as exc:
        raise_service_error(exc)


@router.get("/profile/report")
def profile_report(user: UserAccount = Depends(get_current_user)):
    try:
        report = profile_service.profile_report(user)
    except ServiceError as exc:
        raise_service_error(exc)
    return redact_for_plan(user, report)
