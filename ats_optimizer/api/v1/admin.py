from datetime import datetime

from fastapi import APIRouter, Depends, Query, Response

from ats_optimizer.core.security import require_admin
from ats_optimizer.schemas.account import Plan, UserAccount
from ats_optimizer.schemas.api import PlanOverrideRequest
from ats_optimizer.services import admin_service
from ats_optimizer.services.errors import ServiceError

from .errors import raise_service_error

router = APIRouter()


@router.get("/admin/dashboard")
def admin_dashboard(admin: UserAccount = Depends(require_admin)):
    _ = admin
    return admin_service.dashboard()


@router.get("/admin/users")
def admin_users(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    search: str | None = Query(default=None, max_length=200),
    plan: Plan | None = None,
    admin: UserAccount = Depends(require_admin),
):
    _ = admin
    return admin_service.list_users(search=search, plan=plan, page=page, limit=limit)


@router.get("/admin/users/{user_id}")
def admin_user_detail(user_id: str, admin: UserAccount = Depends(require_admin)):
    _ = admin
    try:
        return admin_service.user_detail(user_id)
    except ServiceError as exc:
        raise_service_error(exc)


@router.patch("/admin/users/{user_id}/plan")
def admin_override_plan(
    user_id: str,
    payload: PlanOverrideRequest,
    admin: UserAccount = Depends(require_admin),
):
    try:
        user = admin_service.override_plan(
            user_id,
            plan=payload.plan,
            plan_status=payload.plan_status,
            plan_expires_at=payload.plan_expires_at,
            admin=admin,
        )
    except ServiceError as exc:
        raise_service_error(exc)
    return {"message": "User plan updated successfully", "user": user.public_view()}


@router.get("/admin/payments")
def admin_payments(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    status: str | None = Query(default=None, max_length=50),
    admin: UserAccount = Depends(require_admin),
):
    _ = admin
    return admin_service.list_payments(status=status, page=page, limit=limit)


@router.get("/admin/export/{export_type}")
def admin_export(
    export_type: str,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    admin: UserAccount = Depends(require_admin),
):
    _ = admin
    try:
        file_name, content = admin_service.export_csv(export_type, start=start_date, end=end_date)
    except ServiceError as exc:
        raise_service_error(exc)
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{file_name}"'},
    )
