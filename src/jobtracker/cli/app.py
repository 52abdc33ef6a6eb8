from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any, NoReturn

import typer
import uvicorn

from jobtracker.api.app import create_app
from jobtracker.api.schemas import CoverLetterVersionResponse
from jobtracker.config import get_settings
from jobtracker.core.gate import RequestGate, parse_generation_request
from jobtracker.core.pipeline import GenerationJob, prepare_generation_job, record_generation_event
from jobtracker.core.stream import GenerationStreamController, StreamConfig
from jobtracker.db.init import init_database
from jobtracker.db.repositories import Repository
from jobtracker.db.session import SessionLocal
from jobtracker.db.versions import VersionStore
from jobtracker.errors import JobTrackerError
from jobtracker.llm.router import LLMRouter
from jobtracker.logging_config import configure_logging
from jobtracker.types import ConfirmedMapping

app = typer.Typer(help="jobtracker CLI")
application_app = typer.Typer(help="Seed applications and confirmed mappings")
evidence_app = typer.Typer(help="Evidence bullets")
letter_app = typer.Typer(help="Cover letter generation and versions")
ai_app = typer.Typer(help="AI provider checks")

app.add_typer(application_app, name="application")
app.add_typer(evidence_app, name="evidence")
app.add_typer(letter_app, name="letter")
app.add_typer(ai_app, name="ai")

OWNER_OPTION = typer.Option("local", "--owner", envvar="JOBTRACKER_OWNER")

_INITIALIZED = False


def ensure_initialized() -> None:
    global _INITIALIZED
    if _INITIALIZED:
        return
    init_database()
    _INITIALIZED = True


def echo_json(payload: Any) -> None:
    typer.echo(json.dumps(payload, indent=2, default=str))


def fail(exc: JobTrackerError) -> NoReturn:
    typer.echo(json.dumps({"error": exc.to_payload()}, indent=2, default=str), err=True)
    raise typer.Exit(code=1)


def version_payload(version: Any) -> dict[str, Any]:
    return CoverLetterVersionResponse.model_validate(version).model_dump(mode="json", by_alias=True)


def generation_payload(
    application_id: str,
    mode: str,
    tone: str | None,
    emphasis: str | None,
    include: list[str] | None,
    avoid: list[str] | None,
) -> dict[str, Any]:
    raw: dict[str, Any] = {"applicationId": application_id, "mode": mode}
    if tone or emphasis or include or avoid:
        raw["constraints"] = {
            "tone": tone,
            "emphasis": emphasis,
            "keywordsInclude": include or [],
            "keywordsAvoid": avoid or [],
        }
    return raw


def admit(owner_id: str, raw: dict[str, Any]) -> GenerationJob:
    with SessionLocal() as db:
        repo = Repository(db)
        admitted = RequestGate(repo).admit(owner_id, parse_generation_request(raw))
        return prepare_generation_job(repo, admitted)


@app.command("init")
def init_cmd() -> None:
    """Initialize the data directory and database schema."""
    configure_logging()
    result = init_database()
    echo_json({"ok": True, **result})


@app.command("serve")
def serve(
    host: str | None = typer.Option(None, "--host"),
    port: int | None = typer.Option(None, "--port"),
    log_level: str | None = typer.Option(None, "--log-level", help="Overrides LOG_LEVEL"),
) -> None:
    configure_logging(log_level)
    ensure_initialized()
    settings = get_settings()
    app_instance = create_app()
    uvicorn.run(app_instance, host=host or settings.app_host, port=port or settings.app_port)


@application_app.command("create")
def application_create(
    company: str = typer.Option(..., "--company"),
    role: str = typer.Option(..., "--role"),
    jd_file: Path | None = typer.Option(None, "--jd-file", exists=True, readable=True),
    owner: str = OWNER_OPTION,
) -> None:
    configure_logging()
    ensure_initialized()
    jd_snapshot = jd_file.read_text(encoding="utf-8") if jd_file else None
    with SessionLocal() as db:
        row = Repository(db).create_application(owner_id=owner, company=company, role=role, jd_snapshot=jd_snapshot)
        echo_json({"id": row.id, "company": row.company, "role": row.role, "hasJd": bool(jd_snapshot)})


@application_app.command("confirm-mapping")
def application_confirm_mapping(
    application_id: str = typer.Option(..., "--application-id"),
    file: Path = typer.Option(..., "--file", exists=True, readable=True),
    owner: str = OWNER_OPTION,
) -> None:
    """Store a confirmed requirement-to-evidence mapping read from a JSON file."""
    configure_logging()
    ensure_initialized()
    mapping = ConfirmedMapping.model_validate(json.loads(file.read_text(encoding="utf-8")))
    with SessionLocal() as db:
        try:
            Repository(db).set_confirmed_mapping(owner, application_id, mapping)
        except ValueError as exc:
            raise typer.BadParameter(str(exc)) from exc
    echo_json({"applicationId": application_id, "items": len(mapping.items)})


@evidence_app.command("add")
def evidence_add(
    text: str = typer.Option(..., "--text"),
    title: str | None = typer.Option(None, "--title"),
    owner: str = OWNER_OPTION,
) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        item = Repository(db).add_evidence(owner_id=owner, text=text, title=title)
        echo_json({"id": item.id, "title": item.title})


@letter_app.command("generate")
def letter_generate(
    application_id: str = typer.Option(..., "--application-id"),
    mode: str = typer.Option("grounded", "--mode"),
    tone: str | None = typer.Option(None, "--tone"),
    emphasis: str | None = typer.Option(None, "--emphasis"),
    include: list[str] | None = typer.Option(None, "--include"),
    avoid: list[str] | None = typer.Option(None, "--avoid"),
    owner: str = OWNER_OPTION,
) -> None:
    configure_logging()
    ensure_initialized()
    raw = generation_payload(application_id, mode, tone, emphasis, include, avoid)
    try:
        job = admit(owner, raw)
        response = LLMRouter().generate_text(job.prompt)
        with SessionLocal() as db:
            version = VersionStore(db).create_generated_version(
                owner_id=owner,
                application_id=job.application_id,
                kind=job.version_kind,
                content=response.content,
            )
            record_generation_event(
                Repository(db), job, version_id=version.id, kind=version.kind, length=len(response.content)
            )
            echo_json({"model": response.model, "version": version_payload(version)})
    except JobTrackerError as exc:
        fail(exc)


@letter_app.command("stream")
def letter_stream(
    application_id: str = typer.Option(..., "--application-id"),
    mode: str = typer.Option("grounded", "--mode"),
    tone: str | None = typer.Option(None, "--tone"),
    emphasis: str | None = typer.Option(None, "--emphasis"),
    include: list[str] | None = typer.Option(None, "--include"),
    avoid: list[str] | None = typer.Option(None, "--avoid"),
    owner: str = OWNER_OPTION,
) -> None:
    """Stream a cover letter to stdout as it is generated."""
    configure_logging()
    ensure_initialized()
    raw = generation_payload(application_id, mode, tone, emphasis, include, avoid)
    try:
        job = admit(owner, raw)
    except JobTrackerError as exc:
        fail(exc)

    controller = GenerationStreamController(StreamConfig.from_settings(get_settings()), SessionLocal)

    async def _consume() -> dict[str, Any]:
        async for event in controller.stream(job):
            if event.event == "delta":
                typer.echo(event.data["content"], nl=False)
            else:
                typer.echo("")
                return {event.event: event.data}
        return {}

    outcome = asyncio.run(_consume())
    echo_json(outcome)
    if "error" in outcome:
        raise typer.Exit(code=1)


@letter_app.command("latest")
def letter_latest(
    application_id: str = typer.Option(..., "--application-id"),
    owner: str = OWNER_OPTION,
) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        try:
            version = VersionStore(db).get_latest_draft_or_preview(owner, application_id)
        except JobTrackerError as exc:
            fail(exc)
        echo_json(version_payload(version) if version else None)


@letter_app.command("submit")
def letter_submit(
    application_id: str = typer.Option(..., "--application-id"),
    file: Path = typer.Option(..., "--file", exists=True, readable=True),
    owner: str = OWNER_OPTION,
) -> None:
    """Record the text that was actually sent as the new submitted version."""
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        if Repository(db).get_application_row(owner, application_id) is None:
            raise typer.BadParameter(f"application {application_id} not found")
        try:
            version = VersionStore(db).create_submitted_version(
                owner_id=owner,
                application_id=application_id,
                content=file.read_text(encoding="utf-8"),
            )
        except JobTrackerError as exc:
            fail(exc)
        echo_json(version_payload(version))


@letter_app.command("history")
def letter_history(
    application_id: str = typer.Option(..., "--application-id"),
    owner: str = OWNER_OPTION,
) -> None:
    configure_logging()
    ensure_initialized()
    with SessionLocal() as db:
        rows = VersionStore(db).list_submitted_versions(owner, application_id)
        echo_json([version_payload(row) for row in rows])


@ai_app.command("health")
def ai_health() -> None:
    configure_logging()
    try:
        echo_json(LLMRouter().health())
    except JobTrackerError as exc:
        fail(exc)
