"""Repository for the post lifecycle: hydrate, persist, delete, recent.

Each method opens its own session through :func:`session_scope`, so no
connection is held between operations.  Backend failures never cross this
boundary as SQLAlchemy types: they are logged and re-raised as an opaque
internal :class:`ApiError`.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from datetime import UTC, datetime

from sqlalchemy import case, delete, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.app.core.errors import normalize_db_error
from backend.app.core.logging import EVENT_POST_CREATED, EVENT_POST_DELETED, EVENT_POST_UPDATED, log_event
from backend.app.db.session import SessionLocal, session_scope
from backend.app.models.post import NewPost, Post
from backend.app.models.post_record import PostRecord

logger = logging.getLogger(__name__)

DEFAULT_RECENT_LIMIT = 10

_UPSERT_DIALECTS = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}

_COLUMNS = (
    PostRecord.id,
    PostRecord.content,
    PostRecord.created_at,
    PostRecord.updated_at,
)


def utcnow() -> datetime:
    return datetime.now(UTC)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands timestamps back without tzinfo; everything is stored as UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def _row_to_post(row) -> Post:
    return Post(
        id=row.id,
        content=row.content,
        created_at=_as_utc(row.created_at),
        updated_at=_as_utc(row.updated_at),
    )


class PostRepository:
    """Point lookup, atomic upsert, delete and recency listing of posts."""

    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._session_factory = session_factory
        self._clock = clock

    def hydrate(self, post_id: uuid.UUID) -> Post | None:
        """Return the stored post with *post_id*, or ``None`` if absent."""
        try:
            with session_scope(self._session_factory) as db:
                row = db.execute(
                    select(*_COLUMNS).where(PostRecord.id == post_id)
                ).one_or_none()
        except SQLAlchemyError as exc:
            raise normalize_db_error(exc, operation="hydrate", write=False) from exc
        return None if row is None else _row_to_post(row)

    def persist(self, post: NewPost | Post) -> Post:
        """Insert or update *post* keyed by ``id`` and return the stored row.

        A missing ``id`` is replaced by a fresh UUID.  On insert both
        timestamps are set to now; on conflict only ``content`` and
        ``updated_at`` change.
        """
        post_id = post.id or uuid.uuid4()
        now = self._clock()
        try:
            with session_scope(self._session_factory) as db:
                dialect = db.get_bind().dialect.name
                # init_db refuses backends missing from this table
                insert = _UPSERT_DIALECTS[dialect]
                stmt = insert(PostRecord).values(
                    id=post_id,
                    content=post.content,
                    created_at=now,
                    updated_at=now,
                )
                stmt = stmt.on_conflict_do_update(
                    index_elements=["id"],
                    set_={
                        "content": stmt.excluded.content,
                        # never let updated_at fall behind created_at
                        "updated_at": case(
                            (
                                stmt.excluded.updated_at < PostRecord.created_at,
                                PostRecord.created_at,
                            ),
                            else_=stmt.excluded.updated_at,
                        ),
                    },
                ).returning(*_COLUMNS)
                row = db.execute(stmt).one()
        except SQLAlchemyError as exc:
            raise normalize_db_error(exc, operation="persist") from exc

        stored = _row_to_post(row)
        # an update keeps the original created_at, so only an insert echoes now
        inserted = stored.created_at == _as_utc(now)
        event = EVENT_POST_CREATED if inserted else EVENT_POST_UPDATED
        log_event(
            logger, "info", event,
            post_id=stored.id,
            content_len=len(stored.content),
        )
        return stored

    def delete(self, post: Post) -> None:
        """Remove *post* by id; deleting an absent id is a no-op."""
        try:
            with session_scope(self._session_factory) as db:
                result = db.execute(delete(PostRecord).where(PostRecord.id == post.id))
        except SQLAlchemyError as exc:
            raise normalize_db_error(exc, operation="delete") from exc
        log_event(logger, "info", EVENT_POST_DELETED, post_id=post.id, rows=result.rowcount)

    def recent(self, limit: int = DEFAULT_RECENT_LIMIT) -> list[Post]:
        """Return up to *limit* posts, most recently updated first.

        Ties on ``updated_at`` fall back to ``created_at`` then ``id``;
        beyond that the order is unspecified.
        """
        try:
            with session_scope(self._session_factory) as db:
                rows = db.execute(
                    select(*_COLUMNS)
                    .order_by(
                        PostRecord.updated_at.desc(),
                        PostRecord.created_at.desc(),
                        PostRecord.id,
                    )
                    .limit(limit)
                ).all()
        except SQLAlchemyError as exc:
            raise normalize_db_error(exc, operation="recent", write=False) from exc
        return [_row_to_post(r) for r in rows]
