"""Pydantic models for the post resource and its inbound representation."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, StrictStr


class Post(BaseModel):
    """A stored post as observed after a write or a read."""

    model_config = ConfigDict(frozen=True)

    id: uuid.UUID
    content: str
    created_at: datetime
    updated_at: datetime


class PostCandidate(BaseModel):
    """Decoded request body, not yet validated.

    ``content`` may be ``None`` here; the validator rejects that before
    anything reaches the store.  Unknown keys are ignored.
    """

    model_config = ConfigDict(frozen=True)

    id: uuid.UUID | None = None
    content: StrictStr | None = None


class DecodeFailure(BaseModel):
    """Result of a body that could not be decoded into a candidate."""

    model_config = ConfigDict(frozen=True)

    message: str


class NewPost(BaseModel):
    """A validated post ready for ``persist``; ``id`` absent means server-assigned."""

    model_config = ConfigDict(frozen=True)

    id: uuid.UUID | None = None
    content: str
