from .session_context import SessionContext, get_session_context, reset_session_context
from .credential_broker import CredentialBroker
from .auth_store import AuthStore
from .navigation_guard import NavigationGuard
from .resource_store import PaginatedResourceStore

__all__ = [
    "SessionContext",
    "get_session_context",
    "reset_session_context",
    "CredentialBroker",
    "AuthStore",
    "NavigationGuard",
    "PaginatedResourceStore",
]
