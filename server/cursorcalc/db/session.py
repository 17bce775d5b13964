from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session, sessionmaker

from cursorcalc.core.config import get_settings
from cursorcalc.db.base import Base

_engine = None
_SessionLocal: sessionmaker[Session] | None = None


def _resolve_history_url() -> str:
    settings = get_settings()
    backend = (settings.history_backend or "memory").strip().lower()
    if backend == "postgres":
        db_url = (settings.history_postgres_url or "").strip()
        if not db_url:
            raise ValueError("HISTORY_POSTGRES_URL must be configured when HISTORY_BACKEND=postgres.")
    elif backend == "sqlite":
        db_url = (settings.history_sqlite_url or "").strip()
        if not db_url:
            raise ValueError("HISTORY_SQLITE_URL / SQLITE_URL must be configured when HISTORY_BACKEND=sqlite.")
    else:
        raise ValueError(f"Unsupported HISTORY_BACKEND for SQL storage: {settings.history_backend}")
    return db_url


def _get_engine():
    global _engine
    if _engine is None:
        db_url = _resolve_history_url()
        kwargs: dict[str, object] = {}
        if db_url.startswith("sqlite"):
            kwargs["connect_args"] = {"check_same_thread": False}
            database = make_url(db_url).database
            if database and database != ":memory:":
                Path(database).parent.mkdir(parents=True, exist_ok=True)
        _engine = create_engine(db_url, **kwargs)
    return _engine


def init_schema() -> None:
    Base.metadata.create_all(_get_engine())


def get_session_factory() -> sessionmaker[Session]:
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(bind=_get_engine(), autoflush=False, autocommit=False)
    return _SessionLocal


@contextmanager
def session_scope(
    session_factory: sessionmaker[Session] | None = None,
) -> Generator[Session, None, None]:
    session = (session_factory or get_session_factory())()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
