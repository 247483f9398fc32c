"""
Database engine, session factory, and metadata shared across the engine.
"""

from __future__ import annotations

from contextlib import contextmanager
import logging
import random
import time
from typing import Any, Callable, Generator, Iterator, TypeVar

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import DeclarativeMeta, Session, declarative_base, sessionmaker

from ..core.config import settings

logger = logging.getLogger(__name__)

_DEFAULT_POOL_KWARGS: dict[str, Any] = {
    "pool_size": 5,
    "max_overflow": 10,
    "pool_timeout": 5,
    "pool_recycle": 300,
    "pool_pre_ping": True,
    "future": True,
}

# Seconds a SQLite writer waits for a competing writer before failing
SQLITE_BUSY_TIMEOUT = 15


def is_sqlite_url(url: str) -> bool:
    return url.startswith("sqlite")


def build_engine_kwargs(db_url: str, *, echo: bool = False) -> dict[str, Any]:
    """Engine options for the configured dialect."""
    if is_sqlite_url(db_url):
        return {
            "echo": echo,
            "future": True,
            "connect_args": {"check_same_thread": False, "timeout": SQLITE_BUSY_TIMEOUT},
        }
    kwargs = dict(_DEFAULT_POOL_KWARGS)
    kwargs["echo"] = echo
    return kwargs


def create_scheduling_engine(db_url: str, *, echo: bool = False) -> Engine:
    """Create an engine for ``db_url`` with dialect-specific tuning applied."""
    new_engine = create_engine(db_url, **build_engine_kwargs(db_url, echo=echo))

    if is_sqlite_url(db_url):

        @event.listens_for(new_engine, "connect")
        def _sqlite_pragmas(dbapi_connection: Any, connection_record: Any) -> None:
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return new_engine


engine: Engine = create_scheduling_engine(settings.database_url, echo=settings.database_echo)


@event.listens_for(engine, "checkout")
def receive_checkout(dbapi_connection: Any, connection_record: Any, connection_proxy: Any) -> None:
    logger.debug("Connection checked out from pool")


SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)

Base: DeclarativeMeta = declarative_base()


def init_db(bind: Engine | None = None) -> None:
    """Create all tables on the given engine (defaults to the global engine)."""
    # Register models on Base.metadata before creating
    from .. import models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)


def get_db() -> Generator[Session, None, None]:
    """Get database session with proper cleanup."""
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@contextmanager
def get_db_session(factory: Callable[[], Session] | None = None) -> Iterator[Session]:
    """Context-managed session for background jobs and out-of-request writes."""
    session = (factory or SessionLocal)()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


T = TypeVar("T")
_RETRYABLE_ERROR_SNIPPETS = (
    "server closed the connection",
    "ssl connection has been closed unexpectedly",
    "database is locked",
)


def _is_retryable_db_error(exc: OperationalError) -> bool:
    message = str(exc).lower()
    return any(snippet in message for snippet in _RETRYABLE_ERROR_SNIPPETS)


def _retry_delay(attempt: int) -> float:
    base = 0.1 * (2 ** (attempt - 1))
    return base + random.uniform(0, 0.05 * attempt)


def with_db_retry(op_name: str, func: Callable[[], T], *, max_attempts: int = 3) -> T:
    """
    Execute a DB operation with retries for transient disconnects and lock timeouts.
    """

    attempt = 1
    while True:
        try:
            return func()
        except OperationalError as exc:
            if attempt >= max_attempts or not _is_retryable_db_error(exc):
                raise

            delay = _retry_delay(attempt)
            logger.warning(
                "Transient DB failure detected, retrying",
                extra={
                    "event": "db_retry",
                    "op": op_name,
                    "attempt": attempt,
                    "delay": delay,
                    "error": str(exc),
                },
            )
            time.sleep(delay)
            attempt += 1


__all__ = [
    "Base",
    "SessionLocal",
    "create_scheduling_engine",
    "engine",
    "get_db",
    "get_db_session",
    "init_db",
    "with_db_retry",
]
