from __future__ import annotations

from fastapi import Depends, Header, HTTPException, status

from ats_optimizer.schemas.account import UserAccount
from ats_optimizer.storage import users as user_store


def _auth_error() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Please provide a valid API key.",
    )


def check_api_key(x_api_key: str | None) -> UserAccount:
    if not x_api_key:
        raise _auth_error()
    user = user_store.get_user_by_api_key(x_api_key.strip())
    if user is None:
        raise _auth_error()
    return user


def get_current_user(x_api_key: str | None = Header(default=None, alias="X-API-Key")) -> UserAccount:
    return check_api_key(x_api_key)


def require_admin(user: UserAccount = Depends(get_current_user)) -> UserAccount:
    if not user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return user
