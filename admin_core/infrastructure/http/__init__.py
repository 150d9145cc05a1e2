"""HTTP infrastructure package."""

from .interceptors import GatewayFailureDetector, ResponseInterceptors
from .resource_client import ResourceClient

__all__ = ["GatewayFailureDetector", "ResponseInterceptors", "ResourceClient"]
