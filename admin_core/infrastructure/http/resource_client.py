"""Backend REST client — implements the ResourceGateway interface.

Every network call of the resource stores goes through ``request``:
it composes the URL, injects the JSON and bearer headers, and turns
non-2xx answers into RequestFailedError. The backend's conventions
(``POST <base>/new`` to create, ``POST <base>/<id>`` to update,
``POST <base>/archive`` for bulk archive) live here so stores stay uniform.
"""

import logging
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

import httpx

from admin_core.application.interfaces.resource_gateway import ResourceGateway
from admin_core.domain.entities import PageResult
from admin_core.domain.exceptions import RequestFailedError
from admin_core.infrastructure.http.envelopes import parse_page_envelope, unwrap_document

if TYPE_CHECKING:
    from admin_core.application.services.session_context import SessionContext

logger = logging.getLogger(__name__)

INVALID_PAYLOAD_MESSAGE = "Invalid JSON payload"


class ResourceClient(ResourceGateway):
    """Infrastructure adapter — talks JSON to the backend REST service.

    Holds no mutable state of its own; one instance is shared by every store.
    The bearer token is read from the session context on each call.
    """

    def __init__(
        self,
        base_url: str,
        session_context: "SessionContext | None" = None,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ):
        self._base_url = base_url.rstrip("/")
        self._session_context = session_context
        self._http_client = http_client
        self._timeout = timeout

    def _get_headers(self, extra: Mapping[str, str] | None = None) -> httpx.Headers:
        """Caller headers, then the ones callers may not override."""
        headers = httpx.Headers(dict(extra or {}))
        headers["Content-Type"] = "application/json"
        token = self._session_context.token if self._session_context else None
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def _get_client(self) -> httpx.AsyncClient:
        """Return the injected client or create a new one."""
        if self._http_client is not None:
            return self._http_client
        return httpx.AsyncClient(timeout=self._timeout)

    async def request(
        self,
        path: str,
        *,
        method: str = "GET",
        params: Mapping[str, Any] | None = None,
        json_body: Any = None,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        """Execute one call and return the decoded JSON body.

        Returns None for 204 responses and empty bodies.

        Raises:
            RequestFailedError: On any non-2xx status.
            httpx.TransportError: On network failures, unmodified.
        """
        url = f"{self._base_url}{path}"
        client = await self._get_client()
        should_close = self._http_client is None

        try:
            response = await client.request(
                method,
                url,
                params=dict(params) if params else None,
                json=json_body,
                headers=self._get_headers(headers),
            )
        finally:
            if should_close:
                await client.aclose()

        logger.debug("%s %s -> %d", method, url, response.status_code)

        if response.status_code == 204:
            return None
        if not response.is_success:
            self._raise_request_failed(response)
        if not response.content:
            return None
        return response.json()

    @staticmethod
    def _raise_request_failed(response: httpx.Response) -> None:
        """Raise RequestFailedError, preferring the server's own message."""
        status = response.status_code
        try:
            data = response.json()
        except ValueError:
            data = None

        message: str | None = None
        if isinstance(data, dict):
            if status == 401 and isinstance(data.get("error"), str):
                message = data["error"]
            elif isinstance(data.get("message"), str):
                message = data["message"]
        if message is None:
            message = INVALID_PAYLOAD_MESSAGE if status == 400 else f"HTTP error! status: {status}"

        raise RequestFailedError(status_code=status, message=message)

    @staticmethod
    def _entity_path(path: str, entity_id: Any) -> str:
        return f"{path}/{quote(str(entity_id), safe='')}"

    @staticmethod
    def _query_params(page: int, size: int, filters: Mapping[str, Any] | None) -> dict[str, Any]:
        params: dict[str, Any] = {"page": page, "size": size}
        for key, value in (filters or {}).items():
            if value is None or value == "":
                continue
            params[key] = value
        return params

    # ── ResourceGateway ─────────────────────────────────────────────

    async def list_page(
        self,
        path: str,
        page: int,
        size: int,
        filters: Mapping[str, Any] | None = None,
    ) -> PageResult:
        data = await self.request(path, params=self._query_params(page, size, filters))
        return parse_page_envelope(data, page=page, size=size)

    async def get_one(self, path: str, entity_id: Any) -> dict[str, Any] | None:
        data = await self.request(self._entity_path(path, entity_id))
        return unwrap_document(data)

    async def create_under(self, path: str, payload: Mapping[str, Any]) -> dict[str, Any] | None:
        data = await self.request(f"{path}/new", method="POST", json_body=dict(payload))
        return unwrap_document(data, strict=False)

    async def upsert(
        self,
        path: str,
        entity_id: Any,
        payload: Mapping[str, Any],
        *,
        id_field: str = "id",
    ) -> dict[str, Any] | None:
        body = {**payload, id_field: entity_id}
        data = await self.request(self._entity_path(path, entity_id), method="POST", json_body=body)
        return unwrap_document(data, strict=False)

    async def remove(self, path: str, entity_id: Any) -> None:
        await self.request(self._entity_path(path, entity_id), method="DELETE")

    async def archive(self, path: str, ids: Iterable[Any]) -> None:
        await self.request(f"{path}/archive", method="POST", json_body={"ids": list(ids)})
