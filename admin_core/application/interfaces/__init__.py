from .identity_provider import IdentityProvider
from .client_environment import ClientEnvironment
from .resource_gateway import ResourceGateway

__all__ = [
    "IdentityProvider",
    "ClientEnvironment",
    "ResourceGateway",
]
