"""Abstract client environment — the host facilities the session core touches.

In a browser these are document cookies, local/session storage, the
location bar and page reloads. Adapters map them onto whatever the
hosting process offers.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import MutableMapping

logger = logging.getLogger(__name__)


class ClientEnvironment(ABC):
    """Port for cookies, storage, navigation and reload."""

    @property
    @abstractmethod
    def hostname(self) -> str:
        ...

    @property
    @abstractmethod
    def current_url(self) -> str:
        ...

    @property
    @abstractmethod
    def local_storage(self) -> MutableMapping[str, str]:
        ...

    @property
    @abstractmethod
    def session_storage(self) -> MutableMapping[str, str]:
        ...

    @abstractmethod
    def cookie_names(self) -> list[str]:
        """Names of every cookie visible to the current host."""
        ...

    @abstractmethod
    def expire_cookie(self, name: str, domain: str | None = None) -> None:
        """Expire ``name`` for the current host, or for ``domain`` when given."""
        ...

    @abstractmethod
    def visit(self, url: str) -> None:
        """Replace the current URL without navigating away."""
        ...

    @abstractmethod
    def navigate(self, url: str) -> None:
        ...

    @abstractmethod
    def reload(self) -> None:
        ...

    def parent_domain(self) -> str | None:
        """``.example.com`` for ``app.example.com``; None for a bare host."""
        host = self.hostname
        if "." not in host:
            return None
        return host[host.index("."):]

    def purge(self) -> None:
        """Forget every client-side auth artifact.

        Expires all cookies for the current host and its parent domain,
        then clears local and session storage.
        """
        parent = self.parent_domain()
        for name in self.cookie_names():
            self.expire_cookie(name)
            if parent:
                self.expire_cookie(name, domain=parent)
        self.local_storage.clear()
        self.session_storage.clear()
        logger.warning("Auth cookies and storage cleared for %s", self.hostname)
