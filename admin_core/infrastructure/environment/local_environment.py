"""Local client environment — cookies, storage and navigation for a Python host.

Cookies live in an ``httpx.Cookies`` jar (hand its ``.jar`` to the HTTP
client so purges take effect on the wire). Local storage is a dict, or a JSON
file when a path is given so it survives restarts the way browser local
storage survives reloads. Session storage is always in memory.
"""

import json
import logging
from collections.abc import Callable, Iterator, MutableMapping
from pathlib import Path
from urllib.parse import urlsplit

import httpx

from admin_core.application.interfaces.client_environment import ClientEnvironment

logger = logging.getLogger(__name__)


class JsonFileStorage(MutableMapping[str, str]):
    """String key/value store persisted to a JSON file on every write."""

    def __init__(self, path: str | Path):
        self._path = Path(path)
        self._data: dict[str, str] = {}
        if self._path.exists():
            try:
                loaded = json.loads(self._path.read_text("utf-8"))
            except ValueError as exc:
                logger.warning("Ignoring unreadable storage file %s: %s", self._path, exc)
            else:
                if isinstance(loaded, dict):
                    self._data = {str(k): str(v) for k, v in loaded.items()}

    def _flush(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(self._data), encoding="utf-8")

    def __getitem__(self, key: str) -> str:
        return self._data[key]

    def __setitem__(self, key: str, value: str) -> None:
        self._data[key] = value
        self._flush()

    def __delitem__(self, key: str) -> None:
        del self._data[key]
        self._flush()

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def clear(self) -> None:
        self._data.clear()
        self._flush()


class LocalClientEnvironment(ClientEnvironment):
    """Infrastructure adapter for a non-browser host."""

    def __init__(
        self,
        origin: str,
        *,
        cookies: httpx.Cookies | None = None,
        storage_file: str | Path | None = None,
        on_navigate: Callable[[str], None] | None = None,
        on_reload: Callable[[], None] | None = None,
    ):
        self._origin = origin.rstrip("/")
        self._current_url = self._origin + "/"
        self.cookies = cookies if cookies is not None else httpx.Cookies()
        self._local_storage: MutableMapping[str, str] = (
            JsonFileStorage(storage_file) if storage_file else {}
        )
        self._session_storage: dict[str, str] = {}
        self._on_navigate = on_navigate
        self._on_reload = on_reload
        self.reload_count = 0

    @property
    def hostname(self) -> str:
        return urlsplit(self._origin).hostname or "localhost"

    @property
    def current_url(self) -> str:
        return self._current_url

    def visit(self, url: str) -> None:
        """Set the current URL, e.g. when the login callback arrives."""
        self._current_url = url

    @property
    def local_storage(self) -> MutableMapping[str, str]:
        return self._local_storage

    @property
    def session_storage(self) -> MutableMapping[str, str]:
        return self._session_storage

    def cookie_names(self) -> list[str]:
        return sorted({cookie.name for cookie in self.cookies.jar})

    def expire_cookie(self, name: str, domain: str | None = None) -> None:
        # Host cookies may be stored with an empty domain when set locally.
        targets = {domain} if domain else {"", self.hostname}
        for cookie in list(self.cookies.jar):
            if cookie.name == name and cookie.domain in targets:
                self.cookies.jar.clear(cookie.domain, cookie.path, cookie.name)

    def navigate(self, url: str) -> None:
        logger.info("Navigating to %s", url.split("?", 1)[0])
        self._current_url = url
        if self._on_navigate is not None:
            self._on_navigate(url)

    def reload(self) -> None:
        self.reload_count += 1
        logger.info("Reloading client at %s", self._current_url)
        if self._on_reload is not None:
            self._on_reload()
