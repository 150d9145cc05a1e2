"""Keycloak infrastructure package."""

from .keycloak_provider import KeycloakIdentityProvider

__all__ = ["KeycloakIdentityProvider"]
