from .session import Session, SessionStatus
from .page import PageResult
from .descriptor import AUDIT_FIELDS, ArchiveStrategy, EntityDescriptor
from .catalog import CATALOG

__all__ = [
    "Session",
    "SessionStatus",
    "PageResult",
    "AUDIT_FIELDS",
    "ArchiveStrategy",
    "EntityDescriptor",
    "CATALOG",
]
