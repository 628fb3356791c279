from fastapi import APIRouter, Depends, Header, Request
from fastapi.concurrency import run_in_threadpool

from ats_optimizer.core.security import get_current_user
from ats_optimizer.schemas.account import UserAccount
from ats_optimizer.services import billing_service
from ats_optimizer.services.errors import ServiceError

from .errors import raise_service_error

router = APIRouter()


@router.post("/billing/webhook")
async def billing_webhook(request: Request, x_signature: str | None = Header(default=None, alias="X-Signature")):
    raw_body = await request.body()
    try:
        await run_in_threadpool(billing_service.handle_webhook, raw_body, x_signature)
    except ServiceError as exc:
        raise_service_error(exc)
    return {"received": True}


@router.get("/billing/history")
def billing_history(user: UserAccount = Depends(get_current_user)):
    return {"payments": billing_service.payment_history(user)}


@router.post("/billing/cancel-subscription")
def cancel_subscription(user: UserAccount = Depends(get_current_user)):
    try:
        billing_service.cancel_subscription(user)
    except ServiceError as exc:
        raise_service_error(exc)
    return {"message": "Subscription cancelled successfully"}
