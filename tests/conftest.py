from __future__ import annotations

import os
import tempfile
from pathlib import Path
from types import SimpleNamespace

_TEST_DIR = Path(tempfile.mkdtemp(prefix="jobtracker-tests-"))
os.environ["DATABASE_URL"] = f"sqlite:///{_TEST_DIR / 'test.db'}"
os.environ["DATA_DIR"] = str(_TEST_DIR)
os.environ["APP_ENV"] = "test"
os.environ["AI_API_KEY"] = ""

import pytest  # noqa: E402

from jobtracker.db import models  # noqa: E402,F401
from jobtracker.db.base import Base  # noqa: E402
from jobtracker.db.repositories import Repository  # noqa: E402
from jobtracker.db.session import SessionLocal, engine  # noqa: E402
from jobtracker.types import ConfirmedMapping, MappingItem  # noqa: E402

JD_TEXT = "We need a backend engineer who ships Python services and mentors others."


@pytest.fixture(autouse=True)
def reset_db() -> None:
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    with SessionLocal() as session:
        yield session


@pytest.fixture
def seeded(db) -> SimpleNamespace:
    """One owner with two evidence bullets, a mapped application, an unmapped one and one without a JD."""
    owner = "user-1"
    repo = Repository(db)
    payments = repo.add_evidence(
        owner_id=owner,
        title="Payments API",
        text="Built a Python payments API serving 2M requests a day",
    )
    mentoring = repo.add_evidence(owner_id=owner, text="Mentored four junior engineers")

    mapped = repo.create_application(owner_id=owner, company="Acme", role="Backend Engineer", jd_snapshot=JD_TEXT)
    mapping = ConfirmedMapping(
        confirmed_at="2026-01-05T10:00:00Z",
        items=[
            MappingItem(item_key="req-1", kind="requirement", text="Ships Python services", bullet_ids=[payments.id]),
            MappingItem(
                item_key="resp-1",
                kind="responsibility",
                text="Mentor other engineers",
                bullet_ids=[mentoring.id, payments.id],
            ),
            MappingItem(
                item_key="req-2",
                kind="requirement",
                text="Operates Kubernetes clusters",
                bullet_ids=[payments.id],
                uncovered=True,
            ),
        ],
    )
    repo.set_confirmed_mapping(owner, mapped.id, mapping)

    unmapped = repo.create_application(owner_id=owner, company="Globex", role="Platform Engineer", jd_snapshot=JD_TEXT)
    no_jd = repo.create_application(owner_id=owner, company="Initech", role="Engineer", jd_snapshot="   ")

    return SimpleNamespace(
        owner=owner,
        other_owner="user-2",
        mapped_id=mapped.id,
        unmapped_id=unmapped.id,
        no_jd_id=no_jd.id,
        payments_id=payments.id,
        mentoring_id=mentoring.id,
        mapping=mapping,
    )
