from __future__ import annotations

import logging
from collections.abc import Iterable

from jobtracker.db.repositories import Repository
from jobtracker.types import ConfirmedMapping, EvidenceRecord, MappingItem

logger = logging.getLogger(__name__)


def collect_evidence_ids(items: Iterable[MappingItem]) -> list[str]:
    """Union of every referenced evidence id, first-seen order, no duplicates."""
    seen: dict[str, None] = {}
    for item in items:
        for bullet_id in item.bullet_ids:
            seen.setdefault(bullet_id, None)
    return list(seen)


class EvidenceResolver:
    def __init__(self, repo: Repository):
        self.repo = repo

    def resolve(self, owner_id: str, mapping: ConfirmedMapping) -> dict[str, EvidenceRecord]:
        ids = collect_evidence_ids(mapping.items)
        if not ids:
            return {}

        records = self.repo.list_evidence_by_ids(owner_id, ids)
        lookup = {record.id: record for record in records}

        missing = len(ids) - len(lookup)
        if missing:
            # Deleted after the mapping was confirmed; the prompt skips them.
            logger.debug("Evidence ids unresolved count=%s owner_id=%s", missing, owner_id)
        return lookup
