from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import StreamingResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from jobtracker.api.deps import get_db, get_llm_router, get_owner_id, get_stream_controller
from jobtracker.api.schemas import (
    AIHealthResponse,
    CoverLetterVersionResponse,
    GeneratedLetterResponse,
    SubmissionNotesPatch,
    SubmittedCreateRequest,
    envelope,
)
from jobtracker.core.events import SSE_HEADERS
from jobtracker.core.gate import RequestGate, parse_generation_request
from jobtracker.core.pipeline import GenerationJob, prepare_generation_job, record_generation_event
from jobtracker.core.stream import GenerationStreamController
from jobtracker.db.repositories import Repository
from jobtracker.db.versions import VersionStore
from jobtracker.errors import ErrorCode, GateError, JobTrackerError
from jobtracker.llm.router import LLMRouter
from jobtracker.types import GenerationConstraints

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["api"])


async def read_json_body(request: Request) -> Any:
    try:
        return await request.json()
    except ValueError as exc:
        raise GateError(ErrorCode.VALIDATION_FAILED, "Invalid request data") from exc


def admit_generation(db: Session, owner_id: str, raw: Any) -> GenerationJob:
    request = parse_generation_request(raw)
    repo = Repository(db)
    try:
        admitted = RequestGate(repo).admit(owner_id, request)
        return prepare_generation_job(repo, admitted)
    except SQLAlchemyError as exc:
        logger.exception("Generation admission failed application_id=%s", request.application_id)
        raise JobTrackerError(ErrorCode.INTERNAL_ERROR, "Internal server error", status_code=500) from exc


@router.post("/cover-letter/stream")
async def stream_cover_letter(
    request: Request,
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
    controller: GenerationStreamController = Depends(get_stream_controller),
) -> StreamingResponse:
    raw = await read_json_body(request)
    job = await run_in_threadpool(admit_generation, db, owner_id, raw)
    return StreamingResponse(
        controller.stream_sse(job, is_cancelled=request.is_disconnected),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@router.post("/cover-letter/generate")
async def generate_cover_letter(
    request: Request,
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
    llm: LLMRouter = Depends(get_llm_router),
) -> dict[str, Any]:
    raw = await read_json_body(request)
    return await run_in_threadpool(_generate, db, owner_id, raw, llm)


def _generate(db: Session, owner_id: str, raw: Any, llm: LLMRouter) -> dict[str, Any]:
    job = admit_generation(db, owner_id, raw)
    response = llm.generate_text(job.prompt)
    version = VersionStore(db).create_generated_version(
        owner_id=owner_id,
        application_id=job.application_id,
        kind=job.version_kind,
        content=response.content,
    )
    record_generation_event(
        Repository(db), job, version_id=version.id, kind=version.kind, length=len(response.content)
    )
    return envelope(
        GeneratedLetterResponse(
            version=CoverLetterVersionResponse.model_validate(version),
            model=response.model,
        )
    )


@router.get("/cover-letter/latest")
def get_latest_cover_letter(
    application_id: UUID = Query(alias="applicationId"),
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    version = VersionStore(db).get_latest_draft_or_preview(owner_id, str(application_id))
    return envelope(CoverLetterVersionResponse.model_validate(version) if version else None)


@router.get("/cover-letter/submitted")
def list_submitted_cover_letters(
    application_id: UUID = Query(alias="applicationId"),
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    rows = VersionStore(db).list_submitted_versions(owner_id, str(application_id))
    return envelope([CoverLetterVersionResponse.model_validate(row) for row in rows])


@router.post("/cover-letter/submitted", status_code=201)
def create_submitted_cover_letter(
    payload: SubmittedCreateRequest,
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    application_id = str(payload.application_id)
    if Repository(db).get_application_row(owner_id, application_id) is None:
        raise JobTrackerError(ErrorCode.NOT_FOUND, "Application not found or access denied", status_code=404)

    version = VersionStore(db).create_submitted_version(
        owner_id=owner_id,
        application_id=application_id,
        content=payload.content,
    )
    return envelope(CoverLetterVersionResponse.model_validate(version))


@router.patch("/cover-letter/submitted/{version_id}/notes")
def update_submission_notes(
    version_id: UUID,
    payload: SubmissionNotesPatch,
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    version = VersionStore(db).update_submission_annotations(
        owner_id,
        str(version_id),
        payload.model_dump(exclude_unset=True),
    )
    return envelope(CoverLetterVersionResponse.model_validate(version))


@router.get("/preferences/generation")
def get_generation_preferences(
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    preferences = Repository(db).get_generation_preferences(owner_id)
    return envelope(preferences or GenerationConstraints())


@router.put("/preferences/generation")
def put_generation_preferences(
    payload: GenerationConstraints,
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
) -> dict[str, Any]:
    return envelope(Repository(db).upsert_generation_preferences(owner_id, payload))


@router.get("/ai/health")
def ai_health(
    owner_id: str = Depends(get_owner_id),
    llm: LLMRouter = Depends(get_llm_router),
) -> dict[str, Any]:
    return envelope(AIHealthResponse.model_validate(llm.health()))
