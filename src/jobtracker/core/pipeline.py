from __future__ import annotations

import logging
from dataclasses import dataclass

from jobtracker.core.evidence import EvidenceResolver
from jobtracker.core.gate import AdmittedRequest
from jobtracker.core.modes import ModePolicy
from jobtracker.db.repositories import Repository
from jobtracker.llm.prompts import build_prompt
from jobtracker.types import GenerationMode, VersionKind

logger = logging.getLogger(__name__)

GENERATED_EVENT = "cover_letter_generated"


@dataclass(slots=True, frozen=True)
class GenerationJob:
    owner_id: str
    application_id: str
    mode: GenerationMode
    prompt: str

    @property
    def version_kind(self) -> VersionKind:
        return ModePolicy(mode=self.mode).version_kind()


def prepare_generation_job(repo: Repository, admitted: AdmittedRequest) -> GenerationJob:
    evidence = {}
    mapping = admitted.application.confirmed_mapping
    if admitted.policy.uses_evidence() and mapping is not None:
        evidence = EvidenceResolver(repo).resolve(admitted.owner_id, mapping)

    prompt = build_prompt(
        application=admitted.application,
        mode=admitted.mode,
        constraints=admitted.constraints,
        evidence=evidence,
    )
    logger.info(
        "Prepared generation job application_id=%s mode=%s evidence=%s",
        admitted.application.id,
        admitted.mode,
        len(evidence),
    )
    return GenerationJob(
        owner_id=admitted.owner_id,
        application_id=admitted.application.id,
        mode=admitted.mode,
        prompt=prompt,
    )


def record_generation_event(repo: Repository, job: GenerationJob, *, version_id: str, kind: str, length: int) -> None:
    # Timeline entries are best-effort; the version is already saved.
    try:
        repo.append_application_event(
            owner_id=job.owner_id,
            application_id=job.application_id,
            event_type=GENERATED_EVENT,
            payload={"versionId": version_id, "kind": kind, "mode": job.mode, "length": length},
        )
    except Exception as exc:
        logger.warning("Failed to record timeline event application_id=%s error=%s", job.application_id, exc)
        try:
            repo.session.rollback()
        except Exception as rollback_exc:
            logger.warning("Timeline rollback failed application_id=%s error=%s", job.application_id, rollback_exc)
