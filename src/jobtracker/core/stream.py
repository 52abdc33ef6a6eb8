"""Streaming cover letter generation.

The controller relays an OpenAI-compatible ``chat/completions`` stream to the
caller as ``delta`` events, then persists the full text once and closes with a
single ``done`` event. Every failure after the stream opens becomes exactly
one terminal ``error`` event. A consumer that goes away before the terminal
event gets nothing more: partial text is dropped, never saved.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import aclosing
from dataclasses import dataclass, field
from typing import Any

import httpx
from sqlalchemy.orm import Session

from jobtracker.config import Settings
from jobtracker.core.events import StreamEvent, delta_event, done_event, error_event, format_sse
from jobtracker.core.pipeline import GenerationJob, record_generation_event
from jobtracker.db.repositories import Repository
from jobtracker.db.versions import VersionStore
from jobtracker.errors import ErrorCode
from jobtracker.llm.providers import build_chat_completions_url

logger = logging.getLogger(__name__)

DATA_PREFIX = "data:"
DONE_SENTINEL = "[DONE]"
MAX_DETAIL_LENGTH = 1000

CancelProbe = Callable[[], Awaitable[bool]]


@dataclass(slots=True)
class StreamConfig:
    api_key: str
    base_url: str
    models: list[str] = field(default_factory=list)
    temperature: float = 0.7
    max_tokens: int = 1000
    timeout_sec: float = 90.0
    stream_timeout_sec: float = 120.0
    expose_details: bool = True
    model_fallback: bool = False

    @classmethod
    def from_settings(cls, settings: Settings) -> StreamConfig:
        return cls(
            api_key=settings.ai_api_key,
            base_url=settings.ai_base_url,
            models=settings.ai_model_list,
            temperature=settings.ai_temperature,
            max_tokens=settings.ai_max_tokens,
            timeout_sec=float(settings.ai_timeout_sec),
            stream_timeout_sec=float(settings.ai_stream_timeout_sec),
            expose_details=not settings.is_production_like,
            model_fallback=settings.ai_stream_model_fallback,
        )


@dataclass(slots=True, frozen=True)
class PersistedVersion:
    id: str
    kind: str


class MalformedFragment(ValueError):
    pass


def extract_delta_content(payload: str) -> str:
    """Return the text carried by one ``data:`` fragment, or ``""`` if it carries none."""
    try:
        parsed = json.loads(payload)
    except json.JSONDecodeError as exc:
        raise MalformedFragment(str(exc)) from exc
    if not isinstance(parsed, dict):
        raise MalformedFragment("fragment is not a JSON object")

    choices = parsed.get("choices") or []
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return ""
    delta = choices[0].get("delta") or {}
    content = delta.get("content") if isinstance(delta, dict) else None
    return content if isinstance(content, str) else ""


class GenerationStreamController:
    def __init__(
        self,
        config: StreamConfig,
        session_factory: Callable[[], Session],
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config
        self.session_factory = session_factory
        self.transport = transport

    async def stream_sse(self, job: GenerationJob, *, is_cancelled: CancelProbe | None = None) -> AsyncIterator[str]:
        async with aclosing(self.stream(job, is_cancelled=is_cancelled)) as events:
            async for event in events:
                yield format_sse(event)

    async def stream(
        self,
        job: GenerationJob,
        *,
        is_cancelled: CancelProbe | None = None,
    ) -> AsyncIterator[StreamEvent]:
        try:
            async with aclosing(self._run(job, is_cancelled)) as events:
                async for event in events:
                    yield event
                    if event.is_terminal:
                        return
        except (asyncio.CancelledError, GeneratorExit):
            logger.info("Cover letter stream cancelled application_id=%s", job.application_id)
            raise
        except TimeoutError:
            logger.error(
                "Cover letter stream exceeded %ss application_id=%s",
                self.config.stream_timeout_sec,
                job.application_id,
            )
            yield error_event(ErrorCode.GENERATION_FAILED, "Cover letter generation timed out")
        except Exception:
            logger.exception("Stream generation error application_id=%s", job.application_id)
            yield error_event(ErrorCode.GENERATION_FAILED, "Cover letter generation failed")

    async def _run(self, job: GenerationJob, is_cancelled: CancelProbe | None) -> AsyncIterator[StreamEvent]:
        if not self.config.api_key or not self.config.models:
            logger.error("AI provider not configured application_id=%s", job.application_id)
            yield error_event(ErrorCode.AI_PROVIDER_NOT_CONFIGURED, "AI provider is not configured")
            return

        endpoint = build_chat_completions_url(self.config.base_url)
        if endpoint is None:
            logger.error("AI provider base URL is invalid base_url=%r", self.config.base_url)
            yield error_event(ErrorCode.AI_PROVIDER_NOT_CONFIGURED, "AI provider base URL is invalid")
            return

        models = self.config.models if self.config.model_fallback else self.config.models[:1]
        deadline = asyncio.get_running_loop().time() + self.config.stream_timeout_sec
        chunks: list[str] = []
        malformed = 0

        logger.info(
            "Cover letter stream started application_id=%s mode=%s model=%s",
            job.application_id,
            job.mode,
            models[0],
        )
        async with httpx.AsyncClient(transport=self.transport, timeout=self.config.timeout_sec) as client:
            for index, model in enumerate(models):
                async with client.stream(
                    "POST",
                    endpoint,
                    headers=self._headers(),
                    json=self._body(model=model, prompt=job.prompt),
                ) as response:
                    if not response.is_success:
                        body = (await response.aread()).decode("utf-8", errors="replace")
                        logger.error(
                            "AI provider error status=%s model=%s application_id=%s body=%s",
                            response.status_code,
                            model,
                            job.application_id,
                            body[:MAX_DETAIL_LENGTH],
                        )
                        if index + 1 < len(models):
                            logger.warning("Retrying stream with fallback model=%s", models[index + 1])
                            continue
                        details = None
                        if self.config.expose_details:
                            details = {"status": response.status_code, "body": body[:MAX_DETAIL_LENGTH]}
                        yield error_event(
                            ErrorCode.AI_PROVIDER_ERROR,
                            f"AI provider returned error: {response.status_code} {response.reason_phrase}".strip(),
                            details,
                        )
                        return

                    lines = response.aiter_lines()
                    while True:
                        try:
                            async with asyncio.timeout_at(deadline):
                                line = await anext(lines)
                        except StopAsyncIteration:
                            break

                        if not line.startswith(DATA_PREFIX):
                            continue
                        payload = line[len(DATA_PREFIX):].strip()
                        if payload == DONE_SENTINEL:
                            continue
                        try:
                            content = extract_delta_content(payload)
                        except MalformedFragment:
                            malformed += 1
                            continue
                        if not content:
                            continue

                        if is_cancelled is not None and await is_cancelled():
                            logger.info(
                                "Caller disconnected; discarding %s chars application_id=%s",
                                sum(len(chunk) for chunk in chunks),
                                job.application_id,
                            )
                            return
                        chunks.append(content)
                        yield delta_event(content)
                break

        if malformed:
            logger.warning(
                "Skipped malformed stream fragments count=%s application_id=%s",
                malformed,
                job.application_id,
            )

        text = "".join(chunks)
        if not text.strip():
            yield error_event(ErrorCode.GENERATION_FAILED, "The AI provider returned no content")
            return

        try:
            version = await asyncio.to_thread(self._persist, job, text)
        except Exception as exc:
            logger.error("Failed to persist draft application_id=%s error=%s", job.application_id, exc)
            yield error_event(ErrorCode.PERSIST_FAILED, "Failed to save draft. Please try again.")
            return

        try:
            await asyncio.to_thread(self._record_generated, job, version, text)
        except Exception as exc:
            logger.warning("Failed to record timeline event application_id=%s error=%s", job.application_id, exc)
        logger.info(
            "Cover letter stream finished application_id=%s version_id=%s chars=%s",
            job.application_id,
            version.id,
            len(text),
        )
        yield done_event(version_id=version.id, kind=version.kind, application_id=job.application_id)

    def _persist(self, job: GenerationJob, text: str) -> PersistedVersion:
        with self.session_factory() as session:
            version = VersionStore(session).create_generated_version(
                owner_id=job.owner_id,
                application_id=job.application_id,
                kind=job.version_kind,
                content=text,
            )
            return PersistedVersion(id=version.id, kind=version.kind)

    def _record_generated(self, job: GenerationJob, version: PersistedVersion, text: str) -> None:
        with self.session_factory() as session:
            record_generation_event(
                Repository(session), job, version_id=version.id, kind=version.kind, length=len(text)
            )

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.config.api_key}",
            "Content-Type": "application/json",
            "Accept": "text/event-stream",
        }

    def _body(self, *, model: str, prompt: str) -> dict[str, Any]:
        return {
            "model": model,
            "messages": [{"role": "user", "content": prompt}],
            "stream": True,
            "temperature": self.config.temperature,
            "max_tokens": self.config.max_tokens,
        }
