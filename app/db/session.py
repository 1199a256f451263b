from __future__ import annotations

from collections.abc import Generator
from contextlib import contextmanager

from loguru import logger
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from app.calendar.errors import CalendarError
from app.config.settings import settings

# Engine and session factory are created on first use so importing the
# package never opens a database connection.
_engine: Engine | None = None
_SessionLocal: sessionmaker[Session] | None = None


def _is_postgresql(url: str) -> bool:
    return "postgresql" in url.lower() or "postgres" in url.lower()


def _validate_postgresql_driver() -> None:
    """Validate PostgreSQL driver is installed when using PostgreSQL.

    Must actually import psycopg2 because SQLAlchemy imports it when the
    engine is created.
    """
    try:
        import psycopg2  # noqa: F401

        logger.info("PostgreSQL driver (psycopg2) is available")
    except ImportError as e:
        logger.error("PostgreSQL driver (psycopg2) is not installed. Install the 'postgres' extra.")
        raise ImportError("PostgreSQL driver required. Install with: pip install psycopg2-binary") from e


def _get_engine() -> Engine:
    """Get or create the database engine (lazy initialization)."""
    global _engine
    if _engine is None:
        url = settings.database_url
        logger.info(f"Initializing database engine: {url}")

        connect_args: dict[str, object] = {}
        if _is_postgresql(url):
            _validate_postgresql_driver()
            connect_args = {"connect_timeout": 10, "application_name": "workout-calendar"}
        elif "sqlite" in url.lower():
            logger.warning("Using SQLite database (local development only)")
            connect_args = {"check_same_thread": False}

        _engine = create_engine(
            url,
            connect_args=connect_args,
            echo=False,
            pool_pre_ping=True,
            pool_recycle=3600,
        )
        logger.info("Database engine initialized")
    return _engine


def get_engine() -> Engine:
    """Get or create the database engine (public API)."""
    return _get_engine()


def _get_session_local() -> sessionmaker[Session]:
    """Get or create the session factory (lazy initialization)."""
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=_get_engine())
        logger.info("Database session factory initialized")
    return _SessionLocal


def check_database_connection() -> None:
    """Run a trivial query so misconfigured DATABASE_URLs fail at startup."""
    try:
        with _get_engine().connect() as conn:
            conn.execute(text("SELECT 1"))
        logger.info("Database connection test successful")
    except Exception as e:
        logger.error(f"Database connection test failed: {e}")
        raise


@contextmanager
def get_session() -> Generator[Session, None, None]:
    """Get database session context manager.

    Commits when the block exits cleanly and rolls back otherwise:
    - CalendarError: business outcome (not found, conflict, ...), rolled back
      and re-raised without error logging
    - Other exceptions: logged as database errors, rolled back and re-raised
    """
    session = _get_session_local()()
    try:
        yield session
        if session.dirty or session.new or session.deleted:
            logger.debug(f"Committing session: dirty={len(session.dirty)}, new={len(session.new)}, deleted={len(session.deleted)}")
        session.commit()
    except CalendarError as e:
        logger.debug(f"{type(e).__name__} in session, rolling back: {e}")
        session.rollback()
        raise
    except Exception as e:
        logger.error(f"Database session error, rolling back: {e}. Error type: {type(e).__name__}")
        logger.exception("Full exception traceback:")
        session.rollback()
        raise
    finally:
        session.close()
