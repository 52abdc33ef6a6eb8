from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import ConfigDict, Field, field_validator

from jobtracker.types import CamelModel


def envelope(data: Any) -> dict[str, Any]:
    return {"data": data, "error": None}


class CoverLetterVersionResponse(CamelModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    application_id: str
    kind: str
    content: str
    is_latest: bool
    created_at: datetime
    submission_where: str | None = None
    submission_notes: str | None = None
    submitted_at: datetime | None = None


class GeneratedLetterResponse(CamelModel):
    version: CoverLetterVersionResponse
    model: str


class SubmittedCreateRequest(CamelModel):
    application_id: UUID
    content: str

    @field_validator("content")
    @classmethod
    def require_content(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("content cannot be empty")
        return value


class SubmissionNotesPatch(CamelModel):
    submission_where: str | None = Field(default=None, max_length=255)
    submission_notes: str | None = Field(default=None, max_length=5000)
    submitted_at: datetime | None = None


class AIHealthResponse(CamelModel):
    ok: bool
    base_url: str | None
    model: str
    model_available: bool
    models: list[str] = Field(default_factory=list)
