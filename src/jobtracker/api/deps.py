from __future__ import annotations

from collections.abc import Generator

from fastapi import Request
from sqlalchemy.orm import Session

from jobtracker.config import get_settings
from jobtracker.core.stream import GenerationStreamController, StreamConfig
from jobtracker.db.session import SessionLocal, get_db_session
from jobtracker.errors import ErrorCode, JobTrackerError
from jobtracker.llm.router import LLMRouter


def get_db() -> Generator[Session, None, None]:
    yield from get_db_session()


def get_owner_id(request: Request) -> str:
    # Identity is asserted by the upstream auth layer through a trusted header.
    owner_id = (request.headers.get(get_settings().auth_header) or "").strip()
    if not owner_id:
        raise JobTrackerError(ErrorCode.UNAUTHORIZED, "Unauthorized", status_code=401)
    return owner_id


def get_stream_controller() -> GenerationStreamController:
    return GenerationStreamController(StreamConfig.from_settings(get_settings()), SessionLocal)


def get_llm_router() -> LLMRouter:
    return LLMRouter(get_settings())
