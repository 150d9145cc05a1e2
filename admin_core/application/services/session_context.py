"""Process-wide session context.

``get_session_context()`` hands out one SessionContext per process.
Rebuilding the components that use it (hot reload, repeated wiring)
reuses the same session fields, identity-provider handle and
handshake guard, so the provider handshake runs at most once.
"""

import asyncio
from collections.abc import Callable
from functools import lru_cache
from typing import Any

from admin_core.application.interfaces.identity_provider import IdentityProvider
from admin_core.domain.entities import Session, SessionStatus


class SessionContext:
    """Holds the session, the identity-provider handle and the init guard.

    Read accessors are public; mutation is reserved to the CredentialBroker.
    """

    def __init__(self) -> None:
        self._session = Session()
        self._provider: IdentityProvider | None = None
        self._initialized = False
        self._pending: asyncio.Future[SessionStatus] | None = None
        self._generation = 0

    # ── Read accessors ──────────────────────────────────────────────

    @property
    def status(self) -> SessionStatus:
        return self._session.status

    @property
    def is_authenticated(self) -> bool:
        return self._session.is_authenticated

    @property
    def token(self) -> str | None:
        return self._session.token

    @property
    def profile(self) -> dict[str, Any] | None:
        return self._session.profile

    @property
    def error(self) -> str | None:
        return self._session.error

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def has_provider(self) -> bool:
        return self._provider is not None

    @property
    def generation(self) -> int:
        """Bumped by every reset; a handshake started in an older generation is stale."""
        return self._generation

    # ── Broker-only mutation ────────────────────────────────────────

    @property
    def session(self) -> Session:
        return self._session

    def provider(self, factory: Callable[[], IdentityProvider]) -> IdentityProvider:
        """The singleton provider handle, created with ``factory`` on first use."""
        if self._provider is None:
            self._provider = factory()
        return self._provider

    @property
    def pending_initialization(self) -> "asyncio.Future[SessionStatus] | None":
        return self._pending

    def begin_initialization(self, pending: "asyncio.Future[SessionStatus]") -> None:
        self._pending = pending

    def end_initialization(self, *, initialized: bool) -> None:
        self._pending = None
        self._initialized = initialized

    def reset(self) -> None:
        """Forced recovery: drop the guard, the pending handshake and the provider handle.

        The session goes back to UNINITIALIZED.
        """
        self._generation += 1
        self._initialized = False
        self._pending = None
        self._provider = None
        self._session.reset()


@lru_cache
def get_session_context() -> SessionContext:
    """The process-wide SessionContext, created on first use."""
    return SessionContext()


def reset_session_context() -> None:
    """Test hook — forget the process-wide context."""
    get_session_context.cache_clear()
