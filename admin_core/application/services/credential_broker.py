"""Credential broker — the only channel to the identity provider.

Owns the session state machine::

    UNINITIALIZED -> INITIALIZING -> AUTHENTICATED | ANONYMOUS | ERROR
    AUTHENTICATED -> AUTHENTICATED (refresh) | ANONYMOUS (refresh failure, logout)

A 502 seen while a handshake or login is in flight means the client holds
a poisoned auth artifact. The broker then purges cookies and storage,
resets the session context and schedules a reload instead of retrying.
A handshake still running when the context is reset (``force_clear`` or
a gateway recovery) is stale: its outcome is dropped.
"""

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from admin_core.application.interfaces.client_environment import ClientEnvironment
from admin_core.application.interfaces.identity_provider import IdentityProvider
from admin_core.application.services.session_context import SessionContext
from admin_core.domain.entities import SessionStatus
from admin_core.domain.exceptions import IdentityProviderError
from admin_core.infrastructure.http.interceptors import GatewayFailureDetector, ResponseInterceptors

logger = logging.getLogger(__name__)


class CredentialBroker:
    """Initializes, refreshes and tears down the session."""

    def __init__(
        self,
        context: SessionContext,
        provider_factory: Callable[[], IdentityProvider],
        environment: ClientEnvironment,
        interceptors: ResponseInterceptors,
        *,
        redirect_uri: str,
        token_min_validity: int = 30,
        reload_delay: float = 1.0,
    ):
        self._context = context
        self._provider_factory = provider_factory
        self._environment = environment
        self._interceptors = interceptors
        self._redirect_uri = redirect_uri
        self._token_min_validity = token_min_validity
        self._reload_delay = reload_delay
        self._reload_handle: asyncio.TimerHandle | None = None

    def _provider(self) -> IdentityProvider:
        return self._context.provider(self._provider_factory)

    # ── Lifecycle ───────────────────────────────────────────────────

    async def initialize(self) -> SessionStatus:
        """Run the provider handshake once per process and return the outcome.

        Later calls return the recorded status. Calls made while the first
        handshake is in flight await that same handshake.
        """
        context = self._context
        if context.initialized:
            return context.status

        pending = context.pending_initialization
        if pending is None:
            pending = asyncio.ensure_future(self._handshake(context.generation))
            context.begin_initialization(pending)
        else:
            logger.debug("Joining the identity-provider handshake already in flight")
        return await asyncio.shield(pending)

    async def _handshake(self, generation: int) -> SessionStatus:
        context = self._context
        if context.generation != generation:
            return context.status
        session = context.session
        session.mark_initializing()
        detector = GatewayFailureDetector("initialization")
        initialized = False

        try:
            try:
                with self._interceptors.installed(detector):
                    provider = self._provider()
                    authenticated = await provider.init()
                    profile = await provider.load_user_profile() if authenticated else None
            except Exception as exc:
                if context.generation != generation:
                    logger.warning("Handshake failed after the session was reset: %s", exc)
                    self._discard_stale_handshake()
                    return context.status
                if detector.observe_error(exc):
                    self._recover_from_gateway_failure()
                    return context.status
                logger.error("Failed to initialize identity provider: %s", exc)
                session.mark_error(str(exc))
                raise

            if context.generation != generation:
                self._discard_stale_handshake()
                return context.status

            if detector.detected:
                self._recover_from_gateway_failure()
                return context.status

            if authenticated:
                token = provider.token
                if not token:
                    message = "Identity provider reported a session without a token"
                    logger.error(message)
                    session.mark_error(message)
                    raise IdentityProviderError(message)
                session.mark_authenticated(token, profile or {})
            else:
                session.mark_anonymous()

            initialized = True
            logger.info("Identity provider initialized: %s", session.status.value)
            return session.status
        finally:
            # A reset detached this handshake; the guard belongs to whoever runs next.
            if context.generation == generation:
                context.end_initialization(initialized=initialized)

    def _discard_stale_handshake(self) -> None:
        logger.warning("Session was reset during the identity-provider handshake; discarding its outcome")
        # The stale provider may have written tokens back into purged storage.
        if not self._context.has_provider and self._context.pending_initialization is None:
            self._environment.purge()

    async def login(self) -> None:
        """Start the provider login flow, returning to the configured redirect URI."""
        detector = GatewayFailureDetector("login")
        try:
            with self._interceptors.installed(detector):
                await self._provider().login(redirect_uri=self._redirect_uri)
        except Exception as exc:
            if detector.observe_error(exc):
                self._recover_from_gateway_failure()
                return
            logger.error("Login failed: %s", exc)
            raise

        if detector.detected:
            self._recover_from_gateway_failure()

    async def logout(self) -> None:
        try:
            await self._provider().logout(redirect_uri=self._redirect_uri)
        except Exception as exc:
            logger.error("Logout failed: %s", exc)
            raise
        self._context.session.mark_anonymous()

    async def refresh(self) -> bool:
        """Refresh the token if it expires within the configured margin.

        Returns True when a new token was stored. A rejected refresh clears
        the whole session (token, profile, authenticated flag) and returns False.
        """
        session = self._context.session
        if not session.is_authenticated:
            return False

        provider = self._provider()
        try:
            refreshed = await provider.update_token(self._token_min_validity)
        except Exception as exc:
            logger.error("Token refresh failed: %s", exc)
            session.mark_anonymous()
            return False

        if refreshed and provider.token:
            session.update_token(provider.token)
            logger.info("Token refreshed successfully")
        return refreshed

    async def handle_token_expired(self) -> None:
        """React to a token-expiry notification: refresh, or log in again."""
        logger.info("Token expired, attempting refresh...")
        await self.refresh()
        if not self._context.is_authenticated:
            logger.warning("Token refresh failed, redirecting to login")
            await self.login()

    def force_clear(self) -> None:
        """Sign out and forget this client: purge cookies/storage and reset the session."""
        logger.warning("Manually clearing auth data")
        self._environment.purge()
        self._context.reset()

    # ── Accessors ───────────────────────────────────────────────────

    def current_token(self) -> str | None:
        return self._context.token

    def current_profile(self) -> dict[str, Any] | None:
        return self._context.profile

    def auth_header(self) -> dict[str, str]:
        token = self._context.token
        return {"Authorization": f"Bearer {token}"} if token else {}

    @property
    def reload_scheduled(self) -> bool:
        return self._reload_handle is not None and not self._reload_handle.cancelled()

    # ── Gateway recovery ────────────────────────────────────────────

    def _recover_from_gateway_failure(self) -> None:
        logger.warning(
            "Gateway failure during identity-provider exchange; clearing client state "
            "and reloading in %.1fs",
            self._reload_delay,
        )
        self._environment.purge()
        self._context.reset()

        if self._reload_handle is not None:
            self._reload_handle.cancel()
        loop = asyncio.get_running_loop()
        self._reload_handle = loop.call_later(self._reload_delay, self._environment.reload)
