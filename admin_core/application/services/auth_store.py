"""UI-facing auth store — what views and the navigation guard read."""

import logging
from typing import Any

from admin_core.application.services.credential_broker import CredentialBroker
from admin_core.application.services.session_context import SessionContext

logger = logging.getLogger(__name__)


class AuthStore:
    """Thin wrapper over the broker that tracks whether auth is still loading."""

    def __init__(self, broker: CredentialBroker, context: SessionContext):
        self._broker = broker
        self._context = context
        self._is_loading = True

    @property
    def is_loading(self) -> bool:
        return self._is_loading

    @property
    def is_authenticated(self) -> bool:
        return self._context.is_authenticated

    @property
    def user_profile(self) -> dict[str, Any] | None:
        return self._context.profile

    @property
    def user_name(self) -> str:
        return (self._context.profile or {}).get("username") or ""

    @property
    def user_email(self) -> str:
        return (self._context.profile or {}).get("email") or ""

    async def initialize_auth(self) -> None:
        """Initialize the session; a failure leaves the user signed out."""
        self._is_loading = True
        try:
            await self._broker.initialize()
        except Exception as exc:
            logger.error("Auth initialization failed: %s", exc)
        finally:
            self._is_loading = False

    async def login(self) -> None:
        await self._broker.login()

    async def logout(self) -> None:
        await self._broker.logout()
