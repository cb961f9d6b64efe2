"""FastAPI dependencies shared by the post routes.

Providers are plain functions so tests can swap them through
``app.dependency_overrides``.
"""

import logging
from functools import lru_cache

from fastapi import Depends, Request
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from backend.app.core.errors import ApiError
from backend.app.core.logging import EVENT_AUTH_REJECTED, EVENT_REQUEST_REJECTED, log_event
from backend.app.core.settings import settings
from backend.app.models.post import DecodeFailure, NewPost
from backend.app.services.auth import AuthDecision, AuthGate, ProvidedCredentials
from backend.app.services.post_repository import PostRepository
from backend.app.services.validation import (
    decode_post_body,
    is_json_content_type,
    to_new_post,
    validate_post,
)

logger = logging.getLogger(__name__)

_basic = HTTPBasic(realm=settings.auth_realm, auto_error=False)


@lru_cache(maxsize=1)
def get_post_repository() -> PostRepository:
    return PostRepository()


@lru_cache(maxsize=1)
def get_auth_gate() -> AuthGate:
    return AuthGate(settings.operator_credentials())


def get_max_content_length() -> int:
    return settings.max_content_length


def require_operator(
    request: Request,
    credentials: HTTPBasicCredentials | None = Depends(_basic),
    gate: AuthGate = Depends(get_auth_gate),
) -> None:
    """Reject the request with 401 and a Basic challenge unless it is the operator."""
    provided = None
    if credentials is not None:
        provided = ProvidedCredentials(
            username=credentials.username,
            password=credentials.password,
        )
    if gate.authorize(provided) is AuthDecision.authorized:
        return
    log_event(
        logger, "warning", EVENT_AUTH_REJECTED,
        method=request.method,
        path=request.url.path,
        credentials_present=provided is not None,
    )
    raise ApiError.unauthorized(gate.challenge)


async def read_post_body(
    request: Request,
    max_length: int = Depends(get_max_content_length),
) -> NewPost:
    """Content-type check, decode and validation of a mutating request body."""
    if not is_json_content_type(request.headers.get("content-type")):
        log_event(logger, "info", EVENT_REQUEST_REJECTED, reason="content_type")
        raise ApiError.unsupported_media_type()

    decoded = decode_post_body(await request.body())
    if isinstance(decoded, DecodeFailure):
        log_event(logger, "info", EVENT_REQUEST_REJECTED, reason="decode")
        raise ApiError.bad_request(decoded.message)

    errors = validate_post(decoded, max_length=max_length)
    if errors:
        log_event(logger, "info", EVENT_REQUEST_REJECTED, reason="validation", errors=len(errors))
        raise ApiError.invalid(errors)
    return to_new_post(decoded)
