"""Operator authorization for mutating requests.

There is exactly one privileged identity for the whole service; its
credentials are supplied at construction rather than read at call time.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass, field
from enum import StrEnum


@dataclass(frozen=True)
class OperatorCredentials:
    """The configured operator account and the realm it is challenged under."""

    username: str
    password: str = field(repr=False)
    realm: str = "Restricted Area"


@dataclass(frozen=True)
class ProvidedCredentials:
    """A username/password pair presented by a client."""

    username: str
    password: str = field(repr=False)


class AuthDecision(StrEnum):
    authorized = "authorized"
    unauthorized = "unauthorized"


class AuthGate:
    """Checks presented credentials against the single operator account."""

    def __init__(self, credentials: OperatorCredentials) -> None:
        self._credentials = credentials

    @property
    def challenge(self) -> str:
        """Value for the ``WWW-Authenticate`` header on rejection."""
        realm = self._credentials.realm.replace('"', '\\"')
        return f'Basic realm="{realm}"'

    def authorize(self, provided: ProvidedCredentials | None) -> AuthDecision:
        """Return ``authorized`` only for an exact username and password match."""
        if provided is None:
            return AuthDecision.unauthorized
        user_ok = secrets.compare_digest(
            provided.username.encode("utf-8"),
            self._credentials.username.encode("utf-8"),
        )
        password_ok = secrets.compare_digest(
            provided.password.encode("utf-8"),
            self._credentials.password.encode("utf-8"),
        )
        if user_ok and password_ok:
            return AuthDecision.authorized
        return AuthDecision.unauthorized
