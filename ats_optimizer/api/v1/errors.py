from __future__ import annotations

from fastapi import HTTPException

from ats_optimizer.services.errors import ServiceError


def raise_service_error(exc: ServiceError) -> None:
    raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc
