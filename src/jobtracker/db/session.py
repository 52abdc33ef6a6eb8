from __future__ import annotations

from collections.abc import Generator

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import Session, sessionmaker

from jobtracker.config import get_settings

SQLITE_BUSY_TIMEOUT_MS = 5000


def _configure_sqlite(dbapi_connection, connection_record) -> None:
    # Cascading deletes of versions and timeline rows need foreign keys on for every connection.
    cursor = dbapi_connection.cursor()
    try:
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute(f"PRAGMA busy_timeout={SQLITE_BUSY_TIMEOUT_MS}")
    finally:
        cursor.close()


def build_engine(database_url: str) -> Engine:
    """Create the engine; SQLite connections are shared across the stream worker threads."""
    if not database_url.startswith("sqlite"):
        return create_engine(database_url, pool_pre_ping=True, future=True)

    sqlite_engine = create_engine(database_url, connect_args={"check_same_thread": False}, future=True)
    event.listen(sqlite_engine, "connect", _configure_sqlite)
    return sqlite_engine


settings = get_settings()
engine = build_engine(settings.database_url)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


def get_db_session() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
