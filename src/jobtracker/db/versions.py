"""Cover letter version persistence.

Every application has two "latest" slots: ``draft`` (shared by draft and
preview rows) and ``submitted``. A new version always demotes the current
holder of its slot and is inserted as the new holder inside one transaction,
so a failed insert never leaves the slot empty. The partial unique index on
``(application_id, slot) WHERE is_latest`` rejects a concurrent writer that
slips between the two statements.

Submitted rows are history: they are never deleted and their ``content`` is
never rewritten. Only the submission annotations can change, through
:meth:`VersionStore.update_submission_annotations`.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from sqlalchemy import and_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from jobtracker.db.models import CoverLetterVersion
from jobtracker.errors import ErrorCode, VersionStoreError
from jobtracker.types import VersionKind, VersionSlot

logger = logging.getLogger(__name__)

SLOT_KINDS: dict[str, tuple[str, ...]] = {
    "draft": ("draft", "preview"),
    "submitted": ("submitted",),
}
ANNOTATION_FIELDS = ("submission_where", "submission_notes", "submitted_at")


def slot_for(kind: str) -> VersionSlot:
    if kind in SLOT_KINDS["draft"]:
        return "draft"
    if kind == "submitted":
        return "submitted"
    raise ValueError(f"unsupported cover letter kind '{kind}'")


class VersionStore:
    def __init__(self, session: Session):
        self.session = session

    def create_draft_version(self, *, owner_id: str, application_id: str, content: str) -> CoverLetterVersion:
        return self.create_generated_version(
            owner_id=owner_id, application_id=application_id, kind="draft", content=content
        )

    def create_preview_version(self, *, owner_id: str, application_id: str, content: str) -> CoverLetterVersion:
        return self.create_generated_version(
            owner_id=owner_id, application_id=application_id, kind="preview", content=content
        )

    def create_generated_version(
        self,
        *,
        owner_id: str,
        application_id: str,
        kind: VersionKind,
        content: str,
    ) -> CoverLetterVersion:
        if kind not in SLOT_KINDS["draft"]:
            raise ValueError(f"generated versions must be draft or preview, got '{kind}'")
        return self._create_latest(owner_id=owner_id, application_id=application_id, kind=kind, content=content)

    def create_submitted_version(self, *, owner_id: str, application_id: str, content: str) -> CoverLetterVersion:
        return self._create_latest(
            owner_id=owner_id, application_id=application_id, kind="submitted", content=content
        )

    def get_latest(self, owner_id: str, application_id: str, slot: VersionSlot) -> CoverLetterVersion | None:
        statement = select(CoverLetterVersion).where(
            and_(
                CoverLetterVersion.owner_id == owner_id,
                CoverLetterVersion.application_id == application_id,
                CoverLetterVersion.kind.in_(SLOT_KINDS[slot]),
                CoverLetterVersion.is_latest.is_(True),
            )
        )
        try:
            return self.session.scalar(statement)
        except SQLAlchemyError as exc:
            logger.error("Failed to fetch latest version application_id=%s slot=%s", application_id, slot)
            raise VersionStoreError(ErrorCode.FETCH_FAILED, "Failed to fetch latest version") from exc

    def get_latest_draft_or_preview(self, owner_id: str, application_id: str) -> CoverLetterVersion | None:
        return self.get_latest(owner_id, application_id, "draft")

    def get_latest_submitted(self, owner_id: str, application_id: str) -> CoverLetterVersion | None:
        return self.get_latest(owner_id, application_id, "submitted")

    def list_submitted_versions(self, owner_id: str, application_id: str) -> list[CoverLetterVersion]:
        statement = (
            select(CoverLetterVersion)
            .where(
                and_(
                    CoverLetterVersion.owner_id == owner_id,
                    CoverLetterVersion.application_id == application_id,
                    CoverLetterVersion.kind == "submitted",
                )
            )
            .order_by(CoverLetterVersion.created_at.desc())
        )
        try:
            return list(self.session.scalars(statement).all())
        except SQLAlchemyError as exc:
            logger.error("Failed to list submitted versions application_id=%s", application_id)
            raise VersionStoreError(ErrorCode.FETCH_FAILED, "Failed to fetch submitted versions") from exc

    def update_submission_annotations(
        self,
        owner_id: str,
        version_id: str,
        patch: Mapping[str, Any],
    ) -> CoverLetterVersion:
        # Built from the allow-list only; content, kind and timestamps are unreachable here.
        values = {field: patch[field] for field in ANNOTATION_FIELDS if field in patch}

        try:
            row = self.session.scalar(
                select(CoverLetterVersion).where(
                    and_(
                        CoverLetterVersion.id == version_id,
                        CoverLetterVersion.owner_id == owner_id,
                        CoverLetterVersion.kind == "submitted",
                    )
                )
            )
        except SQLAlchemyError as exc:
            raise VersionStoreError(ErrorCode.UPDATE_FAILED, "Failed to update submission notes") from exc

        if row is None:
            raise VersionStoreError(
                ErrorCode.NOT_FOUND,
                "Cover letter version not found or not owned by user",
                status_code=404,
            )

        for field, value in values.items():
            setattr(row, field, value)

        try:
            self.session.commit()
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.error("Failed to update submission notes version_id=%s", version_id)
            raise VersionStoreError(ErrorCode.UPDATE_FAILED, "Failed to update submission notes") from exc

        self.session.refresh(row)
        return row

    def _create_latest(
        self,
        *,
        owner_id: str,
        application_id: str,
        kind: VersionKind,
        content: str,
    ) -> CoverLetterVersion:
        if not content or not content.strip():
            raise VersionStoreError(
                ErrorCode.VALIDATION_FAILED,
                "Cover letter content cannot be empty",
                status_code=400,
            )

        slot = slot_for(kind)
        try:
            self._demote(owner_id=owner_id, application_id=application_id, slot=slot)

            version = CoverLetterVersion(
                owner_id=owner_id,
                application_id=application_id,
                kind=kind,
                slot=slot,
                content=content,
                is_latest=True,
            )
            try:
                self.session.add(version)
                self.session.commit()
            except SQLAlchemyError as exc:
                self.session.rollback()
                logger.error(
                    "Failed to insert cover letter version application_id=%s kind=%s error=%s",
                    application_id,
                    kind,
                    exc,
                )
                raise VersionStoreError(
                    ErrorCode.INSERT_FAILED, f"Failed to create new {kind} version"
                ) from exc
        except VersionStoreError:
            raise
        except Exception as exc:
            self.session.rollback()
            logger.exception("Unexpected error creating cover letter version application_id=%s", application_id)
            raise VersionStoreError(ErrorCode.UNKNOWN_ERROR, "An unexpected error occurred") from exc

        self.session.refresh(version)
        logger.info(
            "Created cover letter version id=%s application_id=%s kind=%s",
            version.id,
            application_id,
            kind,
        )
        return version

    def _demote(self, *, owner_id: str, application_id: str, slot: VersionSlot) -> None:
        statement = (
            update(CoverLetterVersion)
            .where(
                and_(
                    CoverLetterVersion.owner_id == owner_id,
                    CoverLetterVersion.application_id == application_id,
                    CoverLetterVersion.kind.in_(SLOT_KINDS[slot]),
                    CoverLetterVersion.is_latest.is_(True),
                )
            )
            .values(is_latest=False)
        )
        try:
            self.session.execute(statement)
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.error(
                "Failed to demote previous versions application_id=%s slot=%s error=%s",
                application_id,
                slot,
                exc,
            )
            raise VersionStoreError(ErrorCode.UPDATE_FAILED, "Failed to update previous versions") from exc
