"""
Database configuration and session management.

Uses SQLAlchemy 2.x style with DeclarativeBase. The gallery runs on a single
SQLite file shared by all request threads, so the engine enables WAL and a
busy timeout, and `run_with_retry` absorbs transient "database is locked"
errors.
"""
import logging
import time
from pathlib import Path
from typing import Callable, TypeVar

from sqlalchemy import create_engine, event
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from app.core.config import get_settings
from app.core.exceptions import StoreUnavailable

logger = logging.getLogger(__name__)

settings = get_settings()

T = TypeVar("T")

database_url = settings.sqlalchemy_database_uri


def _build_engine(url: str):
    """Create an engine, preparing the SQLite file and pragmas when needed."""
    connect_args = {}
    if url.startswith("sqlite"):
        connect_args = {"check_same_thread": False}
        db_file = url.replace("sqlite:///", "", 1)
        if db_file and db_file != ":memory:":
            Path(db_file).parent.mkdir(parents=True, exist_ok=True)

    new_engine = create_engine(
        url,
        pool_pre_ping=not url.startswith("sqlite"),
        echo=settings.DEBUG,
        connect_args=connect_args,
    )

    if url.startswith("sqlite"):
        event.listen(new_engine, "connect", _set_sqlite_pragmas)

    return new_engine


def _set_sqlite_pragmas(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute(f"PRAGMA busy_timeout={int(settings.DB_BUSY_TIMEOUT_MS)}")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


engine = _build_engine(database_url)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class Base(DeclarativeBase):
    """Base class for all database models using SQLAlchemy 2.x style."""
    pass


def get_db():
    """Dependency for getting database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def is_transient_error(exc: OperationalError) -> bool:
    """True for SQLite lock contention, the only storage error worth retrying."""
    message = str(exc.orig if exc.orig is not None else exc).lower()
    return "locked" in message or "busy" in message


def run_with_retry(
    db: Session,
    operation: Callable[[], T],
    attempts: int = None,
    base_delay: float = None,
) -> T:
    """
    Run a unit of work, retrying on lock contention with exponential backoff.

    The session is rolled back before every retry, so `operation` must do all
    of its reads and writes inside the call and commit at the end.

    Raises:
        StoreUnavailable: if the database is still busy after the last attempt
    """
    attempts = attempts or settings.DB_RETRY_ATTEMPTS
    base_delay = settings.DB_RETRY_BASE_DELAY if base_delay is None else base_delay

    for attempt in range(1, attempts + 1):
        try:
            return operation()
        except OperationalError as e:
            db.rollback()
            if not is_transient_error(e):
                raise
            if attempt >= attempts:
                logger.error(f"Database still busy after {attempts} attempts: {e}")
                raise StoreUnavailable() from e
            delay = base_delay * (2 ** (attempt - 1))
            logger.warning(
                f"Database busy, retrying in {delay:.2f}s (attempt {attempt}/{attempts})"
            )
            time.sleep(delay)
