from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class Plan(str, Enum):
    FREE = "free"
    ONE_TIME = "one-time"
    BASIC = "basic"
    PRO = "pro"


class PlanStatus(str, Enum):
    ACTIVE = "active"
    CANCELLED = "cancelled"
    EXPIRED = "expired"
    PENDING = "pending"
    PAST_DUE = "past_due"


class Action(str, Enum):
    RESUME_SCAN = "resume_scan"
    PROFILE_SCAN = "profile_scan"
    CONTENT_EXPORT = "content_export"
    OPTIMIZE = "optimize"
    API_ACCESS = "api_access"
    COMPARISON_VIEW = "comparison_view"


SCAN_ACTIONS = frozenset({Action.RESUME_SCAN, Action.PROFILE_SCAN})


class UsageCounters(BaseModel):
    resume_scans: int = Field(default=0, ge=0)
    profile_scans: int = Field(default=0, ge=0)
    reset_at: datetime

    def for_action(self, action: Action) -> int:
        if action == Action.RESUME_SCAN:
            return self.resume_scans
        if action == Action.PROFILE_SCAN:
            return self.profile_scans
        raise ValueError(f"Action '{action.value}' has no usage counter.")


class UserAccount(BaseModel):
    id: str
    email: str
    first_name: str
    last_name: str
    api_key: str | None = None
    api_key_created_at: datetime | None = None
    is_admin: bool = False
    plan: Plan = Plan.FREE
    plan_status: PlanStatus = PlanStatus.ACTIVE
    customer_id: str | None = None
    subscription_id: str | None = None
    plan_expires_at: datetime | None = None
    usage: UsageCounters
    last_billing_event_key: str | None = None
    created_at: datetime

    def public_view(self) -> dict:
        return self.model_dump(mode="json", exclude={"api_key"})
