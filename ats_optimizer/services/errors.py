from __future__ import annotations

from typing import Any

from ats_optimizer.schemas.account import Plan, UsageCounters


class ServiceError(RuntimeError):
    def __init__(self, message: str, *, status_code: int = 500):
        super().__init__(message)
        self.status_code = status_code

    @property
    def detail(self) -> Any:
        return str(self)


class InvalidInput(ServiceError):
    def __init__(self, message: str):
        super().__init__(message, status_code=400)


class ExtractionFailed(ServiceError):
    def __init__(self, message: str = "Could not extract text from file"):
        super().__init__(message, status_code=400)


class AnalysisNotFound(ServiceError):
    def __init__(self, message: str = "Analysis not found"):
        super().__init__(message, status_code=404)


class GateDenied(ServiceError):
    def __init__(self, message: str, *, plan: Plan, usage: UsageCounters):
        super().__init__(message, status_code=403)
        self.plan = plan
        self.usage = usage

    @property
    def detail(self) -> dict[str, Any]:
        return {
            "error": str(self),
            "plan": self.plan.value,
            "usage": self.usage.model_dump(mode="json"),
        }
