from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from .account import Plan, PlanStatus


class RegisterRequest(BaseModel):
    email: str = Field(min_length=3, max_length=254, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)


class ProfileUrlRequest(BaseModel):
    profile_url: str = Field(min_length=1, max_length=2048)


class ProfileContentRequest(BaseModel):
    content: str = Field(min_length=50)
    headline: str | None = None
    summary: str | None = None


class ResumeTextRequest(BaseModel):
    text: str = Field(min_length=100)
    file_name: str | None = Field(default=None, max_length=255)


class ExportRequest(BaseModel):
    use_optimized: bool = False


class PlanOverrideRequest(BaseModel):
    plan: Plan | None = None
    plan_status: PlanStatus | None = None
    plan_expires_at: datetime | None = None
