"""Generic paginated resource store — one instance per entity kind.

Owns the loaded page of entities, the pagination cursor, the active
filters and the selection set. Collection state changes only after the
server confirms an operation, and every change is applied without an
await in between, so concurrent operations never leave it half-updated.
Operations are not queued: when two overlap, the last one to settle wins.
A request still in flight when its view goes away is not cancelled and
will update the store when it settles.
"""

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from admin_core.application.interfaces.resource_gateway import ResourceGateway
from admin_core.domain.entities import ArchiveStrategy, EntityDescriptor
from admin_core.domain.exceptions import EntityNotFoundError

logger = logging.getLogger(__name__)


class PaginatedResourceStore:
    """CRUD, pagination and selection for one entity kind.

    Every operation logs a failure once and re-raises it unchanged; none
    of them retries.
    """

    def __init__(
        self,
        descriptor: EntityDescriptor,
        gateway: ResourceGateway,
        *,
        page_size: int = 10,
    ):
        self._descriptor = descriptor
        self._gateway = gateway
        self._entries: list[dict[str, Any]] = []
        self._selection: list[Any] = []
        self._page = 1
        self._page_size = page_size
        self._total_count = 0
        self._max_page = 1
        self._loading = False
        self._filters: dict[str, Any] = {}

    # ── State ───────────────────────────────────────────────────────

    @property
    def descriptor(self) -> EntityDescriptor:
        return self._descriptor

    @property
    def entries(self) -> list[dict[str, Any]]:
        return list(self._entries)

    @property
    def selection(self) -> list[Any]:
        return list(self._selection)

    @property
    def selected_entries(self) -> list[dict[str, Any]]:
        selected = set(self._selection)
        return [entry for entry in self._entries if self._descriptor.identify(entry) in selected]

    @property
    def page(self) -> int:
        return self._page

    @property
    def page_size(self) -> int:
        return self._page_size

    @property
    def total_count(self) -> int:
        return self._total_count

    @property
    def max_page(self) -> int:
        return self._max_page

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def filters(self) -> dict[str, Any]:
        return dict(self._filters)

    def get_by_id(self, entity_id: Any) -> dict[str, Any] | None:
        for entry in self._entries:
            if self._descriptor.identify(entry) == entity_id:
                return entry
        return None

    # ── Filters ─────────────────────────────────────────────────────

    def set_filter(self, key: str, value: Any) -> None:
        """Set a filter for the next load; None or "" removes it."""
        if value is None or value == "":
            self._filters.pop(key, None)
        else:
            self._filters[key] = value

    def reset_filters(self) -> None:
        self._filters = {}

    # ── Loading ─────────────────────────────────────────────────────

    async def load(
        self,
        page: int | None = None,
        size: int | None = None,
        filters: Mapping[str, Any] | None = None,
    ) -> None:
        """Load a page; omitted arguments reuse the current page, size and filters.

        On failure the previous entries stay in place.
        """
        page = self._page if page is None else page
        size = self._page_size if size is None else size
        active_filters = self._filters if filters is None else dict(filters)

        self._loading = True
        try:
            result = await self._gateway.list_page(self._descriptor.path, page, size, active_filters)
        except Exception as exc:
            logger.error("Failed to load %s: %s", self._descriptor.name, exc)
            raise
        finally:
            self._loading = False

        self._entries = list(result.entries)
        self._total_count = result.count
        self._page = result.page
        self._page_size = result.page_size
        self._max_page = result.max_page
        self._filters = dict(active_filters)
        self._prune_selection()

    async def fetch_one(self, entity_id: Any) -> dict[str, Any]:
        """Fetch a single record (e.g. for an edit form) without touching the page."""
        try:
            record = await self._gateway.get_one(self._descriptor.path, entity_id)
        except Exception as exc:
            logger.error("Failed to fetch %s %s: %s", self._descriptor.name, entity_id, exc)
            raise
        if record is None:
            error = EntityNotFoundError(self._descriptor.name, entity_id)
            logger.error("Failed to fetch %s %s: %s", self._descriptor.name, entity_id, error)
            raise error
        return record

    # ── Mutations ───────────────────────────────────────────────────

    async def create(self, payload: Mapping[str, Any]) -> dict[str, Any] | None:
        """Create a record and append the server's copy of it to the page."""
        body = self._descriptor.strip_for_write(payload)
        try:
            created = await self._gateway.create_under(self._descriptor.path, body)
        except Exception as exc:
            logger.error("Failed to create %s: %s", self._descriptor.name, exc)
            raise
        if created is not None:
            self._entries.append(created)
        return created

    async def update(self, entity_id: Any, payload: Mapping[str, Any]) -> dict[str, Any] | None:
        """Update a record and replace its loaded copy in place.

        If the record is not on the loaded page, the page is left as is;
        reload to see the change.
        """
        body = self._descriptor.strip_for_write(payload)
        try:
            updated = await self._gateway.upsert(
                self._descriptor.path,
                entity_id,
                body,
                id_field=self._descriptor.id_field,
            )
        except Exception as exc:
            logger.error("Failed to update %s %s: %s", self._descriptor.name, entity_id, exc)
            raise

        if updated is not None:
            for index, entry in enumerate(self._entries):
                if self._descriptor.identify(entry) == entity_id:
                    self._entries[index] = updated
                    break
            else:
                logger.debug("Updated %s %s is not on the loaded page", self._descriptor.name, entity_id)
        return updated

    async def delete(self, entity_id: Any) -> None:
        """Delete a record, then drop it from the page and the selection."""
        try:
            await self._gateway.remove(self._descriptor.path, entity_id)
        except Exception as exc:
            logger.error("Failed to delete %s %s: %s", self._descriptor.name, entity_id, exc)
            raise

        self._entries = [e for e in self._entries if self._descriptor.identify(e) != entity_id]
        self._selection = [key for key in self._selection if key != entity_id]

    async def delete_many(self, entity_ids: Iterable[Any]) -> None:
        """Delete records one after another; stops at the first failure."""
        for entity_id in list(entity_ids):
            await self.delete(entity_id)

    async def archive(self, entity_ids: Iterable[Any]) -> None:
        """Archive records in one call; afterwards none of them stays visible."""
        ids = list(entity_ids)
        if not ids:
            return

        try:
            await self._gateway.archive(self._descriptor.path, ids)
        except Exception as exc:
            logger.error("Failed to archive %s: %s", self._descriptor.name, exc)
            raise

        archived = set(ids)
        self._entries = [e for e in self._entries if self._descriptor.identify(e) not in archived]
        if self._descriptor.archive_strategy is ArchiveStrategy.RELOAD:
            # Hidden locally first, so a failed reload still leaves them out.
            self._selection = []
            await self.load()
            return
        self._prune_selection()

    # ── Selection ───────────────────────────────────────────────────

    def select(self, entity_id: Any) -> bool:
        """Add a loaded record to the selection. Unknown ids are ignored."""
        if entity_id in self._selection:
            return True
        if self.get_by_id(entity_id) is None:
            return False
        self._selection.append(entity_id)
        return True

    def deselect(self, entity_id: Any) -> None:
        self._selection = [key for key in self._selection if key != entity_id]

    def toggle(self, entity_id: Any) -> None:
        if entity_id in self._selection:
            self.deselect(entity_id)
        else:
            self.select(entity_id)

    def clear_selection(self) -> None:
        self._selection = []

    def select_all(self) -> None:
        """Select every record on the loaded page, and nothing else."""
        self._selection = [
            key for key in self._descriptor.identifiers(self._entries) if key is not None
        ]

    def _prune_selection(self) -> None:
        present = set(self._descriptor.identifiers(self._entries))
        self._selection = [key for key in self._selection if key in present]
