"""Cache validators and conditional-GET evaluation for stored posts.

The entity tag is derived from the post's own ``content`` and the
modification time from its ``updated_at``.  Evaluation follows RFC 9110:
``If-None-Match`` takes precedence over ``If-Modified-Since``, and tags are
compared weakly for GET.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from datetime import UTC, datetime
from email.utils import format_datetime, parsedate_to_datetime

from backend.app.models.post import Post


@dataclass(frozen=True)
class CacheValidators:
    etag: str
    last_modified: datetime

    @property
    def last_modified_header(self) -> str:
        return format_datetime(self.last_modified, usegmt=True)

    def headers(self) -> dict[str, str]:
        return {"ETag": self.etag, "Last-Modified": self.last_modified_header}


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def content_fingerprint(content: str) -> str:
    """Strong entity tag for *content*."""
    digest = hashlib.sha256(content.encode("utf-8")).hexdigest()
    return f'"{digest}"'


def validators_for(post: Post) -> CacheValidators:
    """Compute the ETag and Last-Modified validators of *post*."""
    # HTTP dates carry whole seconds only
    last_modified = _as_utc(post.updated_at).replace(microsecond=0)
    return CacheValidators(
        etag=content_fingerprint(post.content),
        last_modified=last_modified,
    )


def _opaque_tag(tag: str) -> str:
    tag = tag.strip()
    if tag.startswith("W/"):
        tag = tag[2:]
    return tag


def etag_matches(if_none_match: str, etag: str) -> bool:
    """Weak comparison of *etag* against an ``If-None-Match`` header value."""
    candidates = [c.strip() for c in if_none_match.split(",") if c.strip()]
    if "*" in candidates:
        return True
    current = _opaque_tag(etag)
    return any(_opaque_tag(c) == current for c in candidates)


def _parse_http_date(value: str) -> datetime | None:
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        return None
    if parsed is None:
        return None
    return _as_utc(parsed)


def is_not_modified(
    validators: CacheValidators,
    *,
    if_none_match: str | None = None,
    if_modified_since: str | None = None,
    now: datetime | None = None,
) -> bool:
    """Return True if the client's cached copy is still current.

    An ``If-Modified-Since`` date later than *now* is invalid and ignored.
    """
    if if_none_match:
        return etag_matches(if_none_match, validators.etag)
    if if_modified_since:
        since = _parse_http_date(if_modified_since)
        if since is None or since > (now or datetime.now(UTC)):
            return False
        return validators.last_modified <= since
    return False
