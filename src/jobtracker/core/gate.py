from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any
from uuid import UUID

from pydantic import ValidationError

from jobtracker.core.modes import ModePolicy
from jobtracker.db.repositories import Repository
from jobtracker.errors import ErrorCode, GateError
from jobtracker.types import (
    ApplicationSnapshot,
    CamelModel,
    GenerationConstraints,
    GenerationMode,
)

logger = logging.getLogger(__name__)


class GenerationRequest(CamelModel):
    application_id: UUID
    mode: GenerationMode = "grounded"
    constraints: GenerationConstraints | None = None


@dataclass(slots=True)
class AdmittedRequest:
    owner_id: str
    application: ApplicationSnapshot
    mode: GenerationMode
    constraints: GenerationConstraints | None

    @property
    def policy(self) -> ModePolicy:
        return ModePolicy(mode=self.mode)


def parse_generation_request(raw: Any) -> GenerationRequest:
    if not isinstance(raw, Mapping):
        raise GateError(ErrorCode.VALIDATION_FAILED, "Invalid request data")
    try:
        return GenerationRequest.model_validate(raw)
    except ValidationError as exc:
        raise GateError(
            ErrorCode.VALIDATION_FAILED,
            "Invalid request data",
            details=exc.errors(include_url=False, include_context=False, include_input=False),
        ) from exc


class RequestGate:
    """Checks generation prerequisites before any provider call is made."""

    def __init__(self, repo: Repository):
        self.repo = repo

    def admit(self, owner_id: str, request: GenerationRequest) -> AdmittedRequest:
        application_id = str(request.application_id)
        application = self.repo.get_application(owner_id, application_id)
        if application is None:
            logger.warning("Application not found application_id=%s owner_id=%s", application_id, owner_id)
            raise GateError(
                ErrorCode.NOT_FOUND,
                "Application not found or access denied",
                status_code=404,
            )

        if not (application.jd_snapshot or "").strip():
            logger.warning("Missing JD snapshot application_id=%s", application_id)
            raise GateError(
                ErrorCode.JD_SNAPSHOT_REQUIRED,
                "Job description snapshot is required. Please paste the JD first.",
            )

        policy = ModePolicy(mode=request.mode)
        if policy.requires_mapping():
            mapping = application.confirmed_mapping
            if mapping is None or not mapping.items:
                logger.warning("Missing confirmed mapping application_id=%s", application_id)
                raise GateError(
                    ErrorCode.CONFIRMED_MAPPING_REQUIRED,
                    "Confirmed mapping is required. Please confirm the requirement to evidence mapping first.",
                )

        constraints = request.constraints
        if constraints is None:
            constraints = self.repo.get_generation_preferences(owner_id)

        return AdmittedRequest(
            owner_id=owner_id,
            application=application,
            mode=request.mode,
            constraints=constraints,
        )
