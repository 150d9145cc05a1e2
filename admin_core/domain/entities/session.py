"""Domain entity for the client-side authentication session."""

from dataclasses import dataclass
from enum import Enum
from typing import Any


class SessionStatus(str, Enum):
    """Lifecycle states of the session."""

    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    AUTHENTICATED = "authenticated"
    ANONYMOUS = "anonymous"
    ERROR = "error"


@dataclass
class Session:
    """Whether the user is signed in, plus the issued token and profile.

    ``token`` and ``profile`` are set if and only if the status is
    AUTHENTICATED; every transition below keeps that true.
    """

    status: SessionStatus = SessionStatus.UNINITIALIZED
    token: str | None = None
    profile: dict[str, Any] | None = None
    error: str | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.status is SessionStatus.AUTHENTICATED

    def mark_initializing(self) -> None:
        self._clear(SessionStatus.INITIALIZING)

    def mark_authenticated(self, token: str, profile: dict[str, Any]) -> None:
        if not token:
            raise ValueError("An authenticated session requires a token")
        self.status = SessionStatus.AUTHENTICATED
        self.token = token
        self.profile = profile
        self.error = None

    def mark_anonymous(self) -> None:
        self._clear(SessionStatus.ANONYMOUS)

    def mark_error(self, message: str) -> None:
        self._clear(SessionStatus.ERROR)
        self.error = message

    def update_token(self, token: str) -> None:
        """Swap in a refreshed token; only valid while authenticated."""
        if not self.is_authenticated:
            raise ValueError(f"Cannot update token in state '{self.status.value}'")
        self.token = token

    def reset(self) -> None:
        """Forced recovery: back to UNINITIALIZED."""
        self._clear(SessionStatus.UNINITIALIZED)

    def _clear(self, status: SessionStatus) -> None:
        self.status = status
        self.token = None
        self.profile = None
        self.error = None
