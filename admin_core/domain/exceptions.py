"""Domain-specific exceptions — framework-independent."""

import re

_GATEWAY_PATTERN = re.compile(r"\b502\b|bad gateway", re.IGNORECASE)


class RequestFailedError(Exception):
    """Raised when the backend answers with a non-2xx status."""

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(message)


class EnvelopeError(ValueError):
    """Raised when a 2xx response body matches no known envelope shape."""


class EntityNotFoundError(Exception):
    """Raised when a requested entity does not exist."""

    def __init__(self, entity_type: str, entity_id: int | str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} with id '{entity_id}' not found")


class IdentityProviderError(Exception):
    """Raised when an exchange with the identity provider fails."""

    def __init__(self, message: str, status_code: int | None = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


def is_gateway_failure(exc: BaseException) -> bool:
    """Tell whether an error points at a broken gateway (HTTP 502)."""
    if getattr(exc, "status_code", None) == 502:
        return True
    return bool(_GATEWAY_PATTERN.search(str(exc)))
