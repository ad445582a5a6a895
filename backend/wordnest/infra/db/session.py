from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from wordnest.core.config import get_settings
from wordnest.infra.db.base import Base

# Seconds a SQLite writer waits on the file lock held by the notifier thread.
_SQLITE_BUSY_TIMEOUT = 30


def _normalize_database_url(raw_url: str | None) -> str:
    if not raw_url:
        return f"sqlite:///{Path(__file__).resolve().parents[3] / 'wordnest.db'}"

    for prefix in ("postgres://", "postgresql://"):
        if raw_url.startswith(prefix) and "+psycopg" not in raw_url:
            return raw_url.replace(prefix, "postgresql+psycopg://", 1)

    if raw_url.startswith("sqlite:///"):
        path_part = raw_url.removeprefix("sqlite:///")
        if path_part and path_part != ":memory:" and not path_part.startswith("/"):
            return f"sqlite:///{Path(path_part).resolve()}"
    return raw_url


def _enable_sqlite_foreign_keys(dbapi_connection, _connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    database_url = _normalize_database_url(get_settings().database_url)

    if not database_url.startswith("sqlite"):
        return create_engine(database_url, pool_pre_ping=True)

    engine = create_engine(
        database_url,
        connect_args={"check_same_thread": False, "timeout": _SQLITE_BUSY_TIMEOUT},
    )
    event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    return engine


@lru_cache(maxsize=1)
def get_session_factory() -> sessionmaker[Session]:
    """Process-wide factory; the job change stream is attached to this one."""
    return sessionmaker(bind=get_engine(), autocommit=False, autoflush=False, expire_on_commit=False)


def init_db() -> None:
    from wordnest.infra.db import models as _models  # noqa: F401

    Base.metadata.create_all(bind=get_engine())
