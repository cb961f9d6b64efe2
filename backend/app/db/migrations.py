"""Alembic migration runner for programmatic startup use."""

import logging
from pathlib import Path

from alembic import command
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory

from backend.app.core.logging import (
    EVENT_DB_MIGRATION_FAILED,
    EVENT_DB_MIGRATION_STARTED,
    EVENT_DB_MIGRATION_SUCCEEDED,
    setup_logging,
)
from backend.app.core.settings import settings
from backend.app.db.engine import engine

logger = logging.getLogger(__name__)

_PROJECT_ROOT = Path(__file__).resolve().parents[3]
_ALEMBIC_INI = _PROJECT_ROOT / "alembic.ini"
_SCRIPT_LOCATION = _PROJECT_ROOT / "alembic"


class MigrationError(Exception):
    """Raised when a migration fails with actionable context."""


def _get_alembic_cfg() -> Config:
    cfg = Config(str(_ALEMBIC_INI)) if _ALEMBIC_INI.exists() else Config()
    cfg.set_main_option("script_location", str(_SCRIPT_LOCATION))
    return cfg


def get_current_revision() -> str | None:
    """Return the current Alembic revision of the database, or None."""
    with engine.connect() as conn:
        ctx = MigrationContext.configure(conn)
        return ctx.get_current_revision()


def get_head_revision() -> str:
    """Return the head revision from the migration scripts."""
    script = ScriptDirectory.from_config(_get_alembic_cfg())
    return script.get_current_head()  # type: ignore[return-value]


def run_migrations() -> None:
    """Run ``alembic upgrade head`` programmatically.

    Called at application startup so the ``posts`` table exists before the
    first request.  Alembic's env.py calls ``fileConfig()`` which
    reconfigures the root logger, so logging is re-applied afterwards.
    """
    current = get_current_revision()
    head = get_head_revision()
    logger.info("%s: current=%s head=%s", EVENT_DB_MIGRATION_STARTED, current, head)
    if current == head:
        logger.info("%s: already at head", EVENT_DB_MIGRATION_SUCCEEDED)
        return
    try:
        command.upgrade(_get_alembic_cfg(), "head")
    except Exception as exc:
        logger.exception(
            "%s: current=%s target=head error=%s",
            EVENT_DB_MIGRATION_FAILED,
            current,
            exc,
        )
        raise MigrationError(
            f"Migration failed (current={current}, target=head): {exc}. "
            f"Check alembic/versions/ for the failing migration."
        ) from exc
    finally:
        setup_logging(settings.log_level)
    logger.info("%s: new_head=%s", EVENT_DB_MIGRATION_SUCCEEDED, get_head_revision())
