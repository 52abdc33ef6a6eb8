from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError
from sqlalchemy import and_, select
from sqlalchemy.orm import Session

from jobtracker.db.models import Application, ApplicationEvent, Evidence, GenerationPreference
from jobtracker.types import (
    ApplicationSnapshot,
    ConfirmedMapping,
    EvidenceRecord,
    GenerationConstraints,
)

logger = logging.getLogger(__name__)


class Repository:
    def __init__(self, session: Session):
        self.session = session

    def create_application(
        self,
        *,
        owner_id: str,
        company: str,
        role: str,
        jd_snapshot: str | None = None,
    ) -> Application:
        application = Application(owner_id=owner_id, company=company, role=role, jd_snapshot=jd_snapshot)
        self.session.add(application)
        self.session.commit()
        self.session.refresh(application)
        return application

    def get_application_row(self, owner_id: str, application_id: str) -> Application | None:
        statement = select(Application).where(
            and_(Application.id == application_id, Application.owner_id == owner_id)
        )
        return self.session.scalar(statement)

    def get_application(self, owner_id: str, application_id: str) -> ApplicationSnapshot | None:
        row = self.get_application_row(owner_id, application_id)
        if row is None:
            return None

        mapping: ConfirmedMapping | None = None
        if row.confirmed_mapping:
            try:
                mapping = ConfirmedMapping.model_validate(row.confirmed_mapping)
            except ValidationError:
                logger.warning("Stored confirmed mapping is invalid application_id=%s", row.id)

        return ApplicationSnapshot(
            id=row.id,
            owner_id=row.owner_id,
            company=row.company,
            role=row.role,
            jd_snapshot=row.jd_snapshot,
            confirmed_mapping=mapping,
        )

    def set_confirmed_mapping(
        self,
        owner_id: str,
        application_id: str,
        mapping: ConfirmedMapping | None,
    ) -> Application:
        row = self.get_application_row(owner_id, application_id)
        if row is None:
            raise ValueError(f"application {application_id} not found")

        row.confirmed_mapping = mapping.model_dump(by_alias=True) if mapping else None
        self.session.commit()
        self.session.refresh(row)
        return row

    def add_evidence(self, *, owner_id: str, text: str, title: str | None = None) -> Evidence:
        item = Evidence(owner_id=owner_id, title=title, text=text)
        self.session.add(item)
        self.session.commit()
        self.session.refresh(item)
        return item

    def list_evidence_by_ids(self, owner_id: str, ids: list[str]) -> list[EvidenceRecord]:
        if not ids:
            return []
        statement = select(Evidence).where(and_(Evidence.owner_id == owner_id, Evidence.id.in_(ids)))
        return [
            EvidenceRecord(id=row.id, title=row.title, text=row.text)
            for row in self.session.scalars(statement).all()
        ]

    def get_generation_preferences(self, owner_id: str) -> GenerationConstraints | None:
        row = self.session.scalar(
            select(GenerationPreference).where(GenerationPreference.owner_id == owner_id)
        )
        if row is None:
            return None
        return GenerationConstraints(
            tone=row.tone,
            emphasis=row.emphasis,
            keywords_include=list(row.keywords_include or []),
            keywords_avoid=list(row.keywords_avoid or []),
        )

    def upsert_generation_preferences(
        self,
        owner_id: str,
        values: GenerationConstraints,
    ) -> GenerationConstraints:
        existing = self.session.scalar(
            select(GenerationPreference).where(GenerationPreference.owner_id == owner_id)
        )
        if existing:
            obj = existing
        else:
            obj = GenerationPreference(owner_id=owner_id)
            self.session.add(obj)

        obj.tone = values.tone
        obj.emphasis = values.emphasis
        obj.keywords_include = list(values.keywords_include)
        obj.keywords_avoid = list(values.keywords_avoid)

        self.session.commit()
        self.session.refresh(obj)
        return values

    def append_application_event(
        self,
        *,
        owner_id: str,
        application_id: str,
        event_type: str,
        payload: dict[str, Any] | None = None,
    ) -> ApplicationEvent:
        event = ApplicationEvent(
            owner_id=owner_id,
            application_id=application_id,
            event_type=event_type,
            payload=payload or {},
        )
        self.session.add(event)
        self.session.commit()
        self.session.refresh(event)
        return event

    def list_application_events(self, owner_id: str, application_id: str) -> list[ApplicationEvent]:
        statement = (
            select(ApplicationEvent)
            .where(
                and_(
                    ApplicationEvent.owner_id == owner_id,
                    ApplicationEvent.application_id == application_id,
                )
            )
            .order_by(ApplicationEvent.created_at.asc())
        )
        return list(self.session.scalars(statement).all())
