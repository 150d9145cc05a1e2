"""Normalized result of a paginated list call."""

from dataclasses import dataclass, field
from typing import Any


@dataclass
class PageResult:
    """One page of entities, whatever envelope shape the server used."""

    entries: list[dict[str, Any]] = field(default_factory=list)
    count: int = 0
    page: int = 1
    max_page: int = 1
    page_size: int = 10
