from __future__ import annotations

from jobtracker.core.evidence import EvidenceResolver, collect_evidence_ids
from jobtracker.db.repositories import Repository
from jobtracker.types import ConfirmedMapping, MappingItem


def test_collect_ids_is_first_seen_and_unique(seeded) -> None:
    assert collect_evidence_ids(seeded.mapping.items) == [seeded.payments_id, seeded.mentoring_id]


def test_resolver_returns_owned_records_by_id(db, seeded) -> None:
    records = EvidenceResolver(Repository(db)).resolve(seeded.owner, seeded.mapping)

    assert set(records) == {seeded.payments_id, seeded.mentoring_id}
    assert records[seeded.payments_id].title == "Payments API"
    assert records[seeded.mentoring_id].title is None


def test_missing_and_foreign_ids_are_simply_absent(db, seeded) -> None:
    repo = Repository(db)
    foreign = repo.add_evidence(owner_id=seeded.other_owner, text="Not yours")
    mapping = ConfirmedMapping(
        confirmed_at="2026-01-05T10:00:00Z",
        items=[
            MappingItem(
                item_key="r1",
                kind="requirement",
                text="Anything",
                bullet_ids=["deleted-id", foreign.id, seeded.payments_id],
            )
        ],
    )

    records = EvidenceResolver(repo).resolve(seeded.owner, mapping)

    assert list(records) == [seeded.payments_id]


def test_mapping_without_bullets_needs_no_lookup(db, seeded, monkeypatch) -> None:
    repo = Repository(db)
    def _unexpected_lookup(*args):
        raise AssertionError("no lookup expected")

    monkeypatch.setattr(repo, "list_evidence_by_ids", _unexpected_lookup)
    mapping = ConfirmedMapping(
        confirmed_at="2026-01-05T10:00:00Z",
        items=[MappingItem(item_key="r1", kind="requirement", text="Anything", uncovered=True)],
    )

    assert EvidenceResolver(repo).resolve(seeded.owner, mapping) == {}
