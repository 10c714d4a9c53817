"""Database engine and session utilities."""
from contextlib import contextmanager
import logging
import time
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session

logger = logging.getLogger(__name__)


def create_db_engine(database_url: str) -> Engine:
    """Build an engine; in-memory SQLite shares one connection across threads."""
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if database_url in {"sqlite://", "sqlite:///:memory:"}:
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, echo=False, future=True, **kwargs)
    return create_engine(database_url, echo=False, future=True)


def init_db(engine: Engine, attempts: int = 30) -> None:
    """Create tables if they do not exist.

    Retries on startup to wait for a database service in Docker.
    """
    last_err: Exception | None = None
    for attempt in range(1, attempts + 1):
        try:
            SQLModel.metadata.create_all(engine)
            return
        except Exception as exc:  # pragma: no cover
            last_err = exc
            logger.warning("waiting for database... (%s/%s) %s", attempt, attempts, exc)
            time.sleep(1)
    if last_err:
        raise last_err


@contextmanager
def session_scope(engine: Engine) -> Iterator[Session]:
    session = Session(engine, autoflush=False)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
