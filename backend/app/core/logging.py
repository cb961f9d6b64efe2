"""Structured logging baseline and event taxonomy.

Event taxonomy (minimum set)::

    app_start              — application process starting
    config_loaded          — settings resolved successfully
    db_initialized         — engine created, DB URL resolved
    db_migration_started   — alembic upgrade beginning
    db_migration_succeeded — alembic upgrade completed
    db_migration_failed    — alembic upgrade error (with traceback)
    db_write_failed        — repository write error
    db_read_failed         — repository read error
    post_created           — a post was inserted
    post_updated           — an existing post was overwritten
    post_deleted           — a post was removed
    post_not_modified      — conditional read answered with 304
    auth_rejected          — mutating request without valid credentials
    request_rejected       — request refused with a 4xx error

Rules:
    - Never log the operator password.
    - Log post IDs and content *lengths*, not raw content.

Usage::

    from backend.app.core.logging import log_event
    log_event(logger, "info", "post_created",
              post_id=post.id, content_len=len(post.content))
"""

import logging
import sys

# Canonical event names for grep-ability and observability.
EVENT_APP_START = "app_start"
EVENT_CONFIG_LOADED = "config_loaded"
EVENT_DB_INITIALIZED = "db_initialized"
EVENT_DB_MIGRATION_STARTED = "db_migration_started"
EVENT_DB_MIGRATION_SUCCEEDED = "db_migration_succeeded"
EVENT_DB_MIGRATION_FAILED = "db_migration_failed"
EVENT_DB_WRITE_FAILED = "db_write_failed"
EVENT_DB_READ_FAILED = "db_read_failed"
EVENT_POST_CREATED = "post_created"
EVENT_POST_UPDATED = "post_updated"
EVENT_POST_DELETED = "post_deleted"
EVENT_POST_NOT_MODIFIED = "post_not_modified"
EVENT_AUTH_REJECTED = "auth_rejected"
EVENT_REQUEST_REJECTED = "request_rejected"


_HANDLER_ATTR = "_hive"


def setup_logging(level: int | str = logging.INFO) -> None:
    """Install the Hive stdout handler on the root logger.

    *level* may be a number or a name such as ``"debug"`` (unknown names
    fall back to INFO).  Idempotent; also re-installs the handler after
    Alembic's ``fileConfig()`` has replaced the root handlers.
    """
    if isinstance(level, str):
        level = logging.getLevelNamesMapping().get(level.upper(), logging.INFO)
    root = logging.getLogger()
    root.setLevel(level)

    for h in root.handlers:
        if getattr(h, _HANDLER_ATTR, False):
            return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    setattr(handler, _HANDLER_ATTR, True)
    root.addHandler(handler)


def log_event(
    logger: logging.Logger,
    level: str,
    event_name: str,
    **kwargs: object,
) -> None:
    """Log *event_name* followed by ``key=value`` pairs at *level*.

    *level* is a logger method name (``"info"``, ``"error"``, ``"exception"``
    and so on); an unknown name logs at INFO.
    """
    parts = " ".join(f"{k}={v}" for k, v in kwargs.items())
    message = f"{event_name}: {parts}" if parts else event_name
    log_fn = getattr(logger, level, logger.info)
    log_fn(message)
