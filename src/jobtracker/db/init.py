from __future__ import annotations

from jobtracker.config import get_settings
from jobtracker.db import models  # noqa: F401
from jobtracker.db.base import Base
from jobtracker.db.session import engine


def ensure_data_directories() -> None:
    settings = get_settings()
    settings.data_dir.mkdir(parents=True, exist_ok=True)


def init_database() -> dict[str, list[str]]:
    ensure_data_directories()
    Base.metadata.create_all(bind=engine)
    return {"tables": sorted(Base.metadata.tables)}
