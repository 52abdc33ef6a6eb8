from __future__ import annotations

from enum import StrEnum
from typing import Any


class ErrorCode(StrEnum):
    UNAUTHORIZED = "UNAUTHORIZED"
    VALIDATION_FAILED = "VALIDATION_FAILED"
    NOT_FOUND = "NOT_FOUND"
    JD_SNAPSHOT_REQUIRED = "JD_SNAPSHOT_REQUIRED"
    CONFIRMED_MAPPING_REQUIRED = "CONFIRMED_MAPPING_REQUIRED"
    AI_PROVIDER_NOT_CONFIGURED = "AI_PROVIDER_NOT_CONFIGURED"
    AI_PROVIDER_ERROR = "AI_PROVIDER_ERROR"
    PERSIST_FAILED = "PERSIST_FAILED"
    GENERATION_FAILED = "GENERATION_FAILED"
    UPDATE_FAILED = "UPDATE_FAILED"
    INSERT_FAILED = "INSERT_FAILED"
    FETCH_FAILED = "FETCH_FAILED"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class JobTrackerError(Exception):
    """Base error carrying a machine-readable code and the HTTP status it maps to."""

    status_code = 500

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        *,
        status_code: int | None = None,
        details: Any = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details
        if status_code is not None:
            self.status_code = status_code

    def to_payload(self, *, include_details: bool = True) -> dict[str, Any]:
        payload: dict[str, Any] = {"code": str(self.code), "message": self.message}
        if include_details and self.details is not None:
            payload["details"] = self.details
        return payload


class GateError(JobTrackerError):
    status_code = 400


class VersionStoreError(JobTrackerError):
    status_code = 500


class ProviderError(JobTrackerError):
    status_code = 502
