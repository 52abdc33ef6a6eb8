from __future__ import annotations

from datetime import UTC, datetime

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from jobtracker.db.models import CoverLetterVersion
from jobtracker.db.versions import VersionStore, slot_for
from jobtracker.errors import ErrorCode, VersionStoreError


def _latest_count(db, application_id: str, kinds: tuple[str, ...]) -> int:
    return db.scalar(
        select(func.count())
        .select_from(CoverLetterVersion)
        .where(
            CoverLetterVersion.application_id == application_id,
            CoverLetterVersion.kind.in_(kinds),
            CoverLetterVersion.is_latest.is_(True),
        )
    )


def test_new_versions_start_without_submission_annotations(db, seeded) -> None:
    version = VersionStore(db).create_draft_version(
        owner_id=seeded.owner, application_id=seeded.mapped_id, content="Dear Acme"
    )

    assert version.kind == "draft"
    assert version.slot == "draft"
    assert version.is_latest
    assert version.submission_where is None
    assert version.submission_notes is None
    assert version.submitted_at is None


def test_draft_and_preview_share_one_latest_slot(db, seeded) -> None:
    store = VersionStore(db)
    first = store.create_draft_version(owner_id=seeded.owner, application_id=seeded.mapped_id, content="one")
    second = store.create_preview_version(owner_id=seeded.owner, application_id=seeded.mapped_id, content="two")
    third = store.create_draft_version(owner_id=seeded.owner, application_id=seeded.mapped_id, content="three")

    db.refresh(first)
    db.refresh(second)
    assert not first.is_latest
    assert not second.is_latest
    assert third.is_latest
    assert _latest_count(db, seeded.mapped_id, ("draft", "preview")) == 1
    assert store.get_latest_draft_or_preview(seeded.owner, seeded.mapped_id).id == third.id


def test_generated_versions_leave_submitted_slot_alone(db, seeded) -> None:
    store = VersionStore(db)
    submitted = store.create_submitted_version(owner_id=seeded.owner, application_id=seeded.mapped_id, content="sent")
    store.create_draft_version(owner_id=seeded.owner, application_id=seeded.mapped_id, content="new draft")

    db.refresh(submitted)
    assert submitted.is_latest
    assert store.get_latest_submitted(seeded.owner, seeded.mapped_id).id == submitted.id


def test_submitted_history_is_kept_newest_first(db, seeded) -> None:
    store = VersionStore(db)
    draft = store.create_draft_version(owner_id=seeded.owner, application_id=seeded.mapped_id, content="draft")
    first = store.create_submitted_version(owner_id=seeded.owner, application_id=seeded.mapped_id, content="v1")
    second = store.create_submitted_version(owner_id=seeded.owner, application_id=seeded.mapped_id, content="v2")

    history = store.list_submitted_versions(seeded.owner, seeded.mapped_id)

    assert [row.id for row in history] == [second.id, first.id]
    assert [row.content for row in history] == ["v2", "v1"]
    assert [row.is_latest for row in history] == [True, False]
    db.refresh(draft)
    assert draft.is_latest
    assert _latest_count(db, seeded.mapped_id, ("submitted",)) == 1


def test_slots_are_scoped_per_application(db, seeded) -> None:
    store = VersionStore(db)
    store.create_draft_version(owner_id=seeded.owner, application_id=seeded.mapped_id, content="a")
    store.create_draft_version(owner_id=seeded.owner, application_id=seeded.unmapped_id, content="b")

    assert _latest_count(db, seeded.mapped_id, ("draft", "preview")) == 1
    assert _latest_count(db, seeded.unmapped_id, ("draft", "preview")) == 1


def test_latest_is_owner_scoped(db, seeded) -> None:
    store = VersionStore(db)
    store.create_draft_version(owner_id=seeded.owner, application_id=seeded.mapped_id, content="mine")

    assert store.get_latest_draft_or_preview(seeded.other_owner, seeded.mapped_id) is None
    assert store.get_latest_submitted(seeded.owner, seeded.mapped_id) is None


def test_empty_content_is_rejected(db, seeded) -> None:
    with pytest.raises(VersionStoreError) as excinfo:
        VersionStore(db).create_submitted_version(owner_id=seeded.owner, application_id=seeded.mapped_id, content="  ")
    assert excinfo.value.code == ErrorCode.VALIDATION_FAILED
    assert excinfo.value.status_code == 400


def test_generated_kind_must_be_draft_or_preview(db, seeded) -> None:
    with pytest.raises(ValueError):
        VersionStore(db).create_generated_version(
            owner_id=seeded.owner, application_id=seeded.mapped_id, kind="submitted", content="x"
        )
    with pytest.raises(ValueError):
        slot_for("archived")


def test_failed_insert_keeps_previous_latest(db, seeded, monkeypatch) -> None:
    store = VersionStore(db)
    previous = store.create_draft_version(owner_id=seeded.owner, application_id=seeded.mapped_id, content="keep me")

    def failing_commit() -> None:
        raise IntegrityError("INSERT", {}, Exception("unique violation"))

    monkeypatch.setattr(db, "commit", failing_commit)
    with pytest.raises(VersionStoreError) as excinfo:
        store.create_draft_version(owner_id=seeded.owner, application_id=seeded.mapped_id, content="lost")
    monkeypatch.undo()

    assert excinfo.value.code == ErrorCode.INSERT_FAILED
    db.expire_all()
    latest = store.get_latest_draft_or_preview(seeded.owner, seeded.mapped_id)
    assert latest is not None
    assert latest.id == previous.id
    assert latest.content == "keep me"


def test_partial_unique_index_rejects_second_latest_row(db, seeded) -> None:
    VersionStore(db).create_draft_version(owner_id=seeded.owner, application_id=seeded.mapped_id, content="first")
    db.add(
        CoverLetterVersion(
            owner_id=seeded.owner,
            application_id=seeded.mapped_id,
            kind="preview",
            slot="draft",
            content="racer",
            is_latest=True,
        )
    )
    with pytest.raises(IntegrityError):
        db.commit()
    db.rollback()


def test_annotations_update_only_allow_listed_fields(db, seeded) -> None:
    store = VersionStore(db)
    version = store.create_submitted_version(owner_id=seeded.owner, application_id=seeded.mapped_id, content="sent")
    sent_at = datetime(2026, 2, 1, 9, 30, tzinfo=UTC)

    updated = store.update_submission_annotations(
        seeded.owner,
        version.id,
        {
            "submission_where": "Company portal",
            "submission_notes": "Referred by Sam",
            "submitted_at": sent_at,
            "content": "rewritten",
            "kind": "draft",
            "is_latest": False,
        },
    )

    assert updated.submission_where == "Company portal"
    assert updated.submission_notes == "Referred by Sam"
    assert updated.submitted_at.replace(tzinfo=UTC) == sent_at
    assert updated.content == "sent"
    assert updated.kind == "submitted"
    assert updated.is_latest


def test_annotations_require_owned_submitted_version(db, seeded) -> None:
    store = VersionStore(db)
    draft = store.create_draft_version(owner_id=seeded.owner, application_id=seeded.mapped_id, content="draft")
    submitted = store.create_submitted_version(owner_id=seeded.owner, application_id=seeded.mapped_id, content="sent")

    for owner_id, version_id in [
        (seeded.owner, draft.id),
        (seeded.other_owner, submitted.id),
        (seeded.owner, "00000000-0000-0000-0000-000000000000"),
    ]:
        with pytest.raises(VersionStoreError) as excinfo:
            store.update_submission_annotations(owner_id, version_id, {"submission_notes": "x"})
        assert excinfo.value.code == ErrorCode.NOT_FOUND
        assert excinfo.value.status_code == 404
