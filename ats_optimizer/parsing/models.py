from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class ExtractedDocument(BaseModel):
    file_name: str
    file_type: Literal["pdf", "docx", "txt"]
    text: str
    warnings: list[str] = Field(default_factory=list)
