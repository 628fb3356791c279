from fastapi import APIRouter, Depends, Request, status

from ats_optimizer.billing import user_can_perform
from ats_optimizer.core.rate_limit import rate_limit
from ats_optimizer.core.security import get_current_user
from ats_optimizer.schemas.account import Action, UserAccount
from ats_optimizer.schemas.api import RegisterRequest
from ats_optimizer.services.accounts import refresh_account, register_user, rotate_api_key
from ats_optimizer.services.errors import ServiceError

from .errors import raise_service_error

router = APIRouter()


@router.post("/auth/register", status_code=status.HTTP_201_CREATED)
@rate_limit()
def register(request: Request, payload: RegisterRequest):
    _ = request
    try:
        user = register_user(email=payload.email, first_name=payload.first_name, last_name=payload.last_name)
    except ServiceError as exc:
        raise_service_error(exc)
    return {"user": user.public_view(), "api_key": user.api_key}


@router.get("/account")
def get_account(user: UserAccount = Depends(get_current_user)):
    user = refresh_account(user)
    return {
        "user": user.public_view(),
        "permissions": {action.value: user_can_perform(user, action) for action in Action},
    }


@router.post("/account/api-key")
def regenerate_api_key(user: UserAccount = Depends(get_current_user)):
    return {"api_key": rotate_api_key(user)}
