"""Decoding and validation of inbound post representations.

Used by the HTTP routes; kept free of framework dependencies so the rules
are testable on their own.  Neither function raises: failures come back as
data for the caller to translate.
"""

import json

from pydantic import ValidationError

from backend.app.models.post import DecodeFailure, NewPost, PostCandidate

DEFAULT_MAX_CONTENT_LENGTH = 10_000

JSON_MEDIA_TYPE = "application/json"


def is_json_content_type(header: str | None) -> bool:
    """Return True if *header* names ``application/json`` (parameters allowed)."""
    if not header:
        return False
    media_type = header.split(";", 1)[0].strip().lower()
    return media_type == JSON_MEDIA_TYPE


def decode_post_body(raw: bytes) -> PostCandidate | DecodeFailure:
    """Parse a request body into a :class:`PostCandidate`.

    Malformed JSON, a top-level value that is not an object, or fields of
    the wrong type yield a :class:`DecodeFailure` describing the problem.
    """
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        return DecodeFailure(message=f"Malformed JSON: {exc}")

    if not isinstance(data, dict):
        return DecodeFailure(message="Request body must be a JSON object.")

    try:
        return PostCandidate.model_validate(data)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
            for err in exc.errors()
        )
        return DecodeFailure(message=f"Invalid field types: {problems}")


def _is_encodable(content: str) -> bool:
    # JSON escapes can smuggle in lone surrogates that no store can encode
    try:
        content.encode("utf-8")
    except UnicodeEncodeError:
        return False
    return True


def validate_post(
    candidate: PostCandidate,
    max_length: int = DEFAULT_MAX_CONTENT_LENGTH,
) -> list[str]:
    """Return error messages for *candidate*; an empty list means valid."""
    errors: list[str] = []
    if candidate.content is None:
        errors.append("Content cannot be nil.")
    elif len(candidate.content) > max_length:
        errors.append(f"Content cannot exceed {max_length:,} characters.")
    elif not _is_encodable(candidate.content):
        errors.append("Content must be valid UTF-8 text.")
    return errors


def to_new_post(candidate: PostCandidate) -> NewPost:
    """Promote a candidate that passed :func:`validate_post`."""
    assert candidate.content is not None  # guaranteed by validate_post
    return NewPost(id=candidate.id, content=candidate.content)
