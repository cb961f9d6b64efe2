"""SQLAlchemy engine configuration."""

import logging
from pathlib import Path

from sqlalchemy import create_engine, text
from sqlalchemy.engine import make_url

from backend.app.core.logging import EVENT_DB_INITIALIZED
from backend.app.core.settings import settings

logger = logging.getLogger(__name__)

# Backends with an atomic INSERT ... ON CONFLICT ... RETURNING
UPSERT_DIALECTS = frozenset({"sqlite", "postgresql"})


def get_resolved_db_path() -> Path:
    """Return the resolved absolute path to the SQLite database file."""
    return Path(settings.app_db_path).resolve()


def _connect_args() -> dict[str, object]:
    if settings.is_sqlite:
        return {"check_same_thread": False}  # required for SQLite
    return {}


engine = create_engine(
    settings.database_url,
    echo=settings.debug,
    connect_args=_connect_args(),
)

logger.info(
    "%s: backend=%s url=%s",
    EVENT_DB_INITIALIZED,
    engine.dialect.name,
    make_url(settings.database_url).render_as_string(hide_password=True),
)


class DatabaseInitError(Exception):
    """Raised when the database cannot be initialized."""


def init_db() -> None:
    """Verify the database is accessible by executing a simple query.

    Called at startup to confirm the DB can be created/opened. Raises
    :class:`DatabaseInitError` with actionable guidance on failure.
    """
    if engine.dialect.name not in UPSERT_DIALECTS:
        msg = (
            f"Unsupported database backend '{engine.dialect.name}'; "
            f"set APP_DATABASE_URL to a SQLite or PostgreSQL URL."
        )
        logger.error("db_init_failed: %s", msg)
        raise DatabaseInitError(msg)
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        logger.info("db_init_verified: backend=%s", engine.dialect.name)
    except Exception as exc:
        msg = (
            f"Cannot open database ({engine.dialect.name}): {exc}. "
            f"Check file permissions or set APP_DB_PATH / APP_DATABASE_URL "
            f"to a writable location."
        )
        logger.error("db_init_failed: %s", msg)
        raise DatabaseInitError(msg) from exc
