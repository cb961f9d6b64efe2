"""Centralized error taxonomy and normalization for API responses.

Every failure surfaced to a client is an :class:`ApiError` tagged with one
:class:`ErrorKind`.  The kind fixes the HTTP status; the app translates the
error into a response in exactly one place (``backend.app.main``).

- Consistent structure (``{"message": ...}`` or ``{"errors": [...]}``)
- No stack traces, SQL, or secrets in client-facing output
- Detailed info logged for debugging
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from enum import StrEnum
from types import MappingProxyType

from backend.app.core.logging import EVENT_DB_READ_FAILED, EVENT_DB_WRITE_FAILED, log_event

logger = logging.getLogger(__name__)


class ErrorKind(StrEnum):
    """Closed set of client-visible failure categories."""

    bad_request = "bad_request"
    unauthorized = "unauthorized"
    permission_denied = "permission_denied"
    not_found = "not_found"
    unsupported_media_type = "unsupported_media_type"
    internal = "internal"


HTTP_STATUS: Mapping[ErrorKind, int] = MappingProxyType({
    ErrorKind.bad_request: 400,
    ErrorKind.unauthorized: 401,
    ErrorKind.permission_denied: 403,
    ErrorKind.not_found: 404,
    ErrorKind.unsupported_media_type: 415,
    ErrorKind.internal: 500,
})

_DEFAULT_MESSAGES: Mapping[ErrorKind, str] = MappingProxyType({
    ErrorKind.bad_request: "The request could not be understood.",
    ErrorKind.unauthorized: "Not authorized",
    ErrorKind.permission_denied: "Permission denied.",
    ErrorKind.not_found: "The resource you're looking for is not here.",
    ErrorKind.unsupported_media_type: "Content-Type must be application/json.",
    ErrorKind.internal: "A service error occurred.",
})


class ApiError(Exception):
    """A failure carrying its category, client message and extra headers."""

    def __init__(
        self,
        kind: ErrorKind,
        message: str | None = None,
        *,
        errors: Sequence[str] = (),
        headers: Mapping[str, str] | None = None,
    ) -> None:
        self.kind = kind
        self.message = message or _DEFAULT_MESSAGES[kind]
        self.errors = tuple(errors)
        self.headers = dict(headers or {})
        super().__init__(self.message)

    @property
    def http_status(self) -> int:
        return HTTP_STATUS[self.kind]

    def body(self) -> dict[str, object]:
        """JSON body: the error list when present, else the message."""
        if self.errors:
            return {"errors": list(self.errors)}
        return {"message": self.message}

    def __repr__(self) -> str:
        return f"ApiError(kind={self.kind!s}, message={self.message!r})"

    @classmethod
    def bad_request(cls, message: str | None = None) -> ApiError:
        return cls(ErrorKind.bad_request, message)

    @classmethod
    def invalid(cls, errors: Sequence[str]) -> ApiError:
        """400 carrying field validation messages."""
        return cls(ErrorKind.bad_request, "Validation failed.", errors=errors)

    @classmethod
    def unauthorized(cls, challenge: str) -> ApiError:
        return cls(
            ErrorKind.unauthorized,
            headers={"WWW-Authenticate": challenge},
        )

    @classmethod
    def permission_denied(cls, message: str | None = None) -> ApiError:
        return cls(ErrorKind.permission_denied, message)

    @classmethod
    def not_found(cls, message: str | None = None) -> ApiError:
        return cls(ErrorKind.not_found, message)

    @classmethod
    def unsupported_media_type(cls) -> ApiError:
        return cls(ErrorKind.unsupported_media_type)

    @classmethod
    def internal(cls) -> ApiError:
        return cls(ErrorKind.internal)


def normalize_db_error(
    exc: Exception,
    *,
    operation: str,
    write: bool = True,
) -> ApiError:
    """Log a backend failure in full and return an opaque internal error."""
    log_event(
        logger, "error", EVENT_DB_WRITE_FAILED if write else EVENT_DB_READ_FAILED,
        operation=operation,
        error_category="db",
        detail=f"{type(exc).__name__}: {exc}",
    )
    return ApiError.internal()


def normalize_unknown_error(exc: Exception, *, operation: str) -> ApiError:
    """Normalize an unexpected error into a safe generic message."""
    log_event(
        logger, "exception", "unknown_error",
        operation=operation,
        error_category="unknown",
        detail=f"{type(exc).__name__}: {exc}",
    )
    return ApiError(ErrorKind.internal, "An unexpected error occurred.")
