"""Abstract identity provider interface — port for OIDC SDK adapters."""

from abc import ABC, abstractmethod
from typing import Any


class IdentityProvider(ABC):
    """Port — what the credential broker needs from an identity-provider SDK."""

    @property
    @abstractmethod
    def token(self) -> str | None:
        """The current access token, if any."""
        ...

    @abstractmethod
    async def init(self) -> bool:
        """Finish a pending login callback or run the silent session check.

        Returns:
            True when an existing session was found (or a login callback
            completed), False when the user is anonymous.

        Raises:
            IdentityProviderError: If the provider rejects the handshake.
        """
        ...

    @abstractmethod
    async def load_user_profile(self) -> dict[str, Any]:
        """Fetch the signed-in user's profile."""
        ...

    @abstractmethod
    async def login(self, *, redirect_uri: str) -> None:
        """Start the authorization-code flow, returning to ``redirect_uri``."""
        ...

    @abstractmethod
    async def logout(self, *, redirect_uri: str) -> None:
        """End the provider session, returning to ``redirect_uri``."""
        ...

    @abstractmethod
    async def update_token(self, min_validity: int) -> bool:
        """Refresh the token if it expires within ``min_validity`` seconds.

        Returns:
            True if a new token was issued, False if none was needed.

        Raises:
            IdentityProviderError: If the refresh is rejected.
        """
        ...
