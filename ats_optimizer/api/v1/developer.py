from fastapi import APIRouter, Depends, HTTPException, Query, status

from ats_optimizer.core.api_rate_limit import DeveloperRateLimitExceeded, enforce_developer_rate_limit
from ats_optimizer.core.config import settings
from ats_optimizer.core.security import get_current_user
from ats_optimizer.schemas.account import Action, UserAccount
from ats_optimizer.schemas.api import ProfileContentRequest, ResumeTextRequest
from ats_optimizer.services import profile_service, resume_service
from ats_optimizer.services.accounts import ensure_allowed, refresh_account
from ats_optimizer.services.errors import ServiceError
from ats_optimizer.services.visibility import analysis_view

from .errors import raise_service_error

router = APIRouter()

API_CONTENT_SOURCE = "api-content"


def require_api_access(user: UserAccount = Depends(get_current_user)) -> UserAccount:
    user = refresh_account(user)
    try:
        ensure_allowed(user, Action.API_ACCESS)
    except ServiceError as exc:
        raise_service_error(exc)

    try:
        enforce_developer_rate_limit(
            client_key=user.id,
            limit=settings.developer_rate_limit,
            window_seconds=settings.developer_rate_window_seconds,
        )
    except DeveloperRateLimitExceeded as exc:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail={"error": "API rate limit exceeded", "retry_after_seconds": settings.developer_rate_window_seconds},
        ) from exc
    return user


def _scan_result(analysis) -> dict:
    return {
        "data": {
            "analysis_id": analysis.id,
            "composite_score": analysis.composite_score,
            "analysis": analysis.facts.model_dump(mode="json") if analysis.facts else {},
            "suggestions": [item.model_dump(mode="json") for item in analysis.suggestions],
            "processing_ms": analysis.processing_ms,
        }
    }


@router.get("/developer/docs")
def developer_docs(user: UserAccount = Depends(require_api_access)):
    _ = user
    window_minutes = settings.developer_rate_window_seconds // 60
    return {
        "name": "ATS Optimizer API",
        "version": "1.0.0",
        "description": "API for resume and LinkedIn profile optimization",
        "endpoints": {
            "GET /v1/developer/user": "Get current user information",
            "GET /v1/developer/resume/analyses": "Get resume analysis history",
            "GET /v1/developer/resume/analyses/{id}": "Get specific resume analysis",
            "POST /v1/developer/resume/analyze-text": "Analyze resume text content",
            "GET /v1/developer/profile/analyses": "Get profile analysis history",
            "GET /v1/developer/profile/analyses/{id}": "Get specific profile analysis",
            "POST /v1/developer/profile/analyze-content": "Analyze profile content",
        },
        "authentication": {"type": "API Key", "header": "X-API-Key", "note": "API access requires Pro plan"},
        "rate_limit": {"requests": settings.developer_rate_limit, "window": f"{window_minutes} minutes"},
    }


@router.get("/developer/user")
def developer_user(user: UserAccount = Depends(require_api_access)):
    return {
        "id": user.id,
        "email": user.email,
        "plan": user.plan.value,
        "usage": user.usage.model_dump(mode="json"),
        "api_key_created_at": user.api_key_created_at,
    }


@router.get("/developer/resume/analyses")
def developer_resume_analyses(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=50),
    user: UserAccount = Depends(require_api_access),
):
    history = resume_service.resume_history(user, page=page, limit=limit)
    return {"data": history["analyses"], "pagination": history["pagination"]}


@router.get("/developer/resume/analyses/{analysis_id}")
def developer_resume_analysis(analysis_id: str, user: UserAccount = Depends(require_api_access)):
    try:
        analysis = resume_service.get_resume_analysis(user, analysis_id)
    except ServiceError as exc:
        raise_service_error(exc)
    return {"data": analysis_view(analysis, include_source=False)}


@router.post("/developer/resume/analyze-text")
def developer_resume_analyze_text(payload: ResumeTextRequest, user: UserAccount = Depends(require_api_access)):
    try:
        analysis = resume_service.analyze_resume_text(user, payload.text, file_name=payload.file_name or "api-upload.txt")
    except ServiceError as exc:
        raise_service_error(exc)
    return _scan_result(analysis)


@router.get("/developer/profile/analyses")
def developer_profile_analyses(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=50),
    user: UserAccount = Depends(require_api_access),
):
    history = profile_service.profile_history(user, page=page, limit=limit)
    return {"data": history["analyses"], "pagination": history["pagination"]}


@router.get("/developer/profile/analyses/{analysis_id}")
def developer_profile_analysis(analysis_id: str, user: UserAccount = Depends(require_api_access)):
    try:
        analysis = profile_service.get_profile_analysis(user, analysis_id)
    except ServiceError as exc:
        raise_service_error(exc)
    return {"data": analysis_view(analysis)}


@router.post("/developer/profile/analyze-content")
def developer_profile_analyze_content(
    payload: ProfileContentRequest,
    user: UserAccount = Depends(require_api_access),
):
    try:
        analysis = profile_service.analyze_profile_content(
            user,
            payload.content,
            headline=payload.headline,
            summary=payload.summary,
            source=API_CONTENT_SOURCE,
        )
    except ServiceError as exc:
        raise_service_error(exc)
    return _scan_result(analysis)
