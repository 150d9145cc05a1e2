"""Abstract REST gateway — the contract every resource store depends on."""

from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from typing import Any

from admin_core.domain.entities import PageResult


class ResourceGateway(ABC):
    """Port for the backend REST service, implemented in the infrastructure layer."""

    @abstractmethod
    async def list_page(
        self,
        path: str,
        page: int,
        size: int,
        filters: Mapping[str, Any] | None = None,
    ) -> PageResult:
        """Retrieve one page of a collection."""
        ...

    @abstractmethod
    async def get_one(self, path: str, entity_id: Any) -> dict[str, Any] | None:
        """Retrieve a single document, or None when the envelope holds no document."""
        ...

    @abstractmethod
    async def create_under(self, path: str, payload: Mapping[str, Any]) -> dict[str, Any] | None:
        """Create an entity (``POST <path>/new``) and return the stored record."""
        ...

    @abstractmethod
    async def upsert(
        self,
        path: str,
        entity_id: Any,
        payload: Mapping[str, Any],
        *,
        id_field: str = "id",
    ) -> dict[str, Any] | None:
        """Update an entity (``POST <path>/<id>``) and return the stored record."""
        ...

    @abstractmethod
    async def remove(self, path: str, entity_id: Any) -> None:
        """Delete an entity."""
        ...

    @abstractmethod
    async def archive(self, path: str, ids: Iterable[Any]) -> None:
        """Archive several entities in one call."""
        ...
