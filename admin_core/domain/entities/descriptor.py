"""Entity descriptors — what the generic store needs to know about a resource kind."""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

AUDIT_FIELDS = frozenset({"author", "regDate", "lastModifier", "lastModifiedDate"})


class ArchiveStrategy(str, Enum):
    """How a store hides archived records after the server confirms."""

    PRUNE = "prune"    # drop archived entries from the loaded page
    RELOAD = "reload"  # reload the page; the server filters archived records


@dataclass(frozen=True)
class EntityDescriptor:
    """Parameterizes a PaginatedResourceStore for one entity kind.

    ``id_field`` is the stable identifier used for updates, deletes and
    as the selection key. Fields in ``server_owned_fields`` (audit
    fields plus any server-generated keys) never leave the client.
    """

    name: str
    path: str
    id_field: str = "id"
    server_owned_fields: frozenset[str] = AUDIT_FIELDS
    archive_strategy: ArchiveStrategy = ArchiveStrategy.PRUNE

    def __post_init__(self) -> None:
        if not self.path.startswith("/"):
            raise ValueError(f"Resource path must start with '/': {self.path!r}")

    def identify(self, record: Mapping[str, Any]) -> Any:
        """Return the identifier of a record, or None when it has none."""
        return record.get(self.id_field)

    def strip_for_write(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        """Copy of ``payload`` without the identifier and server-owned fields."""
        excluded = self.server_owned_fields | {self.id_field}
        return {key: value for key, value in payload.items() if key not in excluded}

    def identifiers(self, records: Iterable[Mapping[str, Any]]) -> list[Any]:
        return [self.identify(record) for record in records]
