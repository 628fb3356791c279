from fastapi import APIRouter, Depends, File, HTTPException, Query, Request, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import PlainTextResponse

from ats_optimizer.core.config import settings
from ats_optimizer.core.rate_limit import rate_limit
from ats_optimizer.core.security import get_current_user
from ats_optimizer.schemas.account import UserAccount
from ats_optimizer.schemas.api import ExportRequest
from ats_optimizer.services import resume_service
from ats_optimizer.services.errors import ServiceError
from ats_optimizer.services.visibility import analysis_view, redact_for_plan

from .errors import raise_service_error

router = APIRouter()


async def _read_upload(file: UploadFile) -> bytes:
    total = 0
    chunks: list[bytes] = []
    while True:
        chunk = await file.read(1024 * 64)
        if not chunk:
            break
        total += len(chunk)
        if total > settings.max_upload_bytes:
            raise HTTPException(
                status_code=413,
                detail=f"File too large. Maximum size is {settings.max_upload_bytes // (1024 * 1024)} MB.",
            )
        chunks.append(chunk)
    return b"".join(chunks)


@router.post("/resume/analyze")
@rate_limit()
async def analyze_resume(
    request: Request,
    file: UploadFile = File(...),
    user: UserAccount = Depends(get_current_user),
):
    _ = request
    payload = await _read_upload(file)
    try:
        analysis = await run_in_threadpool(
            resume_service.analyze_resume_upload,
            user,
            payload,
            file_name=file.filename or "upload",
            content_type=file.content_type,
        )
    except ServiceError as exc:
        raise_service_error(exc)
    view = {
        "analysis_id": analysis.id,
        "composite_score": analysis.composite_score,
        "analysis": analysis.facts.model_dump(mode="json") if analysis.facts else {},
        "suggestions": [item.model_dump(mode="json") for item in analysis.suggestions],
        "processing_ms": analysis.processing_ms,
    }
    return redact_for_plan(user, view)


@router.get("/resume/analyses/{analysis_id}")
def get_resume_analysis(analysis_id: str, user: UserAccount = Depends(get_current_user)):
    try:
        analysis = resume_service.get_resume_analysis(user, analysis_id)
    except ServiceError as exc:
        raise_service_error(exc)
    return redact_for_plan(user, analysis_view(analysis))


@router.get("/resume/history")
def resume_history(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    user: UserAccount = Depends(get_current_user),
):
    return resume_service.resume_history(user, page=page, limit=limit)


@router.post("/resume/optimize/{analysis_id}")
def optimize_resume(analysis_id: str, user: UserAccount = Depends(get_current_user)):
    try:
        analysis = resume_service.optimize_resume_analysis(user, analysis_id)
    except ServiceError as exc:
        raise_service_error(exc)
    return {"optimized_content": analysis.optimized.text, "generated_at": analysis.optimized.generated_at}


@router.post("/resume/export/{analysis_id}", response_class=PlainTextResponse)
def export_resume(
    analysis_id: str,
    payload: ExportRequest | None = None,
    user: UserAccount = Depends(get_current_user),
):
    use_optimized = payload.use_optimized if payload else False
    try:
        file_name, content = resume_service.export_resume(user, analysis_id, use_optimized=use_optimized)
    except ServiceError as exc:
        raise_service_error(exc)
    return PlainTextResponse(
        content,
        headers={"Content-Disposition": f'attachment; filename="{file_name}"'},
    )


@router.get("/resume/compare/{analysis_id}")
def compare_resume(analysis_id: str, user: UserAccount = Depends(get_current_user)):
    try:
        return resume_service.compare_resume_analysis(user, analysis_id)
    except ServiceError as exc:
        raise_service_error(exc)
