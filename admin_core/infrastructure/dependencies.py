"""Dependency wiring — builds the shared client objects once per process.

Every factory is cached, so repeated calls (or repeated imports of the
consuming views) return the same instances. ``reset_dependencies()``
clears the caches for tests.
"""

from functools import lru_cache

import httpx

from admin_core.application.services import (
    AuthStore,
    CredentialBroker,
    NavigationGuard,
    PaginatedResourceStore,
    get_session_context,
)
from admin_core.config import get_settings
from admin_core.domain.entities import CATALOG
from admin_core.infrastructure.environment import LocalClientEnvironment
from admin_core.infrastructure.http import ResourceClient, ResponseInterceptors
from admin_core.infrastructure.keycloak import KeycloakIdentityProvider


@lru_cache
def get_response_interceptors() -> ResponseInterceptors:
    return ResponseInterceptors()


@lru_cache
def get_client_environment() -> LocalClientEnvironment:
    return LocalClientEnvironment(get_settings().app_origin)


@lru_cache
def get_http_client() -> httpx.AsyncClient:
    """Shared HTTP client; every response passes through the interceptors."""
    settings = get_settings()
    return httpx.AsyncClient(
        timeout=settings.request_timeout,
        cookies=get_client_environment().cookies.jar,
        event_hooks={"response": [get_response_interceptors()]},
    )


def _create_identity_provider() -> KeycloakIdentityProvider:
    settings = get_settings()
    return KeycloakIdentityProvider(
        url=settings.keycloak_url,
        realm=settings.keycloak_realm,
        client_id=settings.keycloak_client_id,
        environment=get_client_environment(),
        http_client=get_http_client(),
    )


@lru_cache
def get_credential_broker() -> CredentialBroker:
    settings = get_settings()
    return CredentialBroker(
        get_session_context(),
        _create_identity_provider,
        get_client_environment(),
        get_response_interceptors(),
        redirect_uri=settings.app_origin,
        token_min_validity=settings.token_min_validity,
        reload_delay=settings.gateway_reload_delay,
    )


@lru_cache
def get_resource_client() -> ResourceClient:
    settings = get_settings()
    return ResourceClient(
        base_url=settings.api_base_url,
        session_context=get_session_context(),
        http_client=get_http_client(),
        timeout=settings.request_timeout,
    )


@lru_cache
def get_auth_store() -> AuthStore:
    return AuthStore(get_credential_broker(), get_session_context())


@lru_cache
def get_navigation_guard() -> NavigationGuard:
    return NavigationGuard(get_auth_store())


@lru_cache
def get_store(name: str) -> PaginatedResourceStore:
    """The store for one catalog entry, e.g. ``get_store("labels")``."""
    try:
        descriptor = CATALOG[name]
    except KeyError:
        raise ValueError(f"Unknown resource kind: {name!r}") from None
    return PaginatedResourceStore(
        descriptor,
        get_resource_client(),
        page_size=get_settings().default_page_size,
    )


def reset_dependencies() -> None:
    """Test hook — drop every cached instance, settings included."""
    for factory in (
        get_store,
        get_navigation_guard,
        get_auth_store,
        get_resource_client,
        get_credential_broker,
        get_http_client,
        get_client_environment,
        get_response_interceptors,
        get_settings,
    ):
        factory.cache_clear()


async def close_dependencies() -> None:
    """Close the shared HTTP client, then drop every cached instance."""
    if get_http_client.cache_info().currsize:
        await get_http_client().aclose()
    reset_dependencies()
