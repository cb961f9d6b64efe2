"""SQLAlchemy ORM model for the posts table."""

import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Index, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from backend.app.db.base import Base


class PostRecord(Base):
    """One stored post; exactly one row per ``id``."""

    __tablename__ = "posts"
    __table_args__ = (
        Index("ix_posts_updated_at", "updated_at"),
        CheckConstraint(
            "created_at <= updated_at",
            name="timestamps",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
    )
