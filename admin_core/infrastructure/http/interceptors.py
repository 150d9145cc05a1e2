"""Response interceptors — observe every response of a shared httpx client.

The registry is installed once as an httpx ``response`` event hook.
Components that need to watch traffic for a while (the credential
broker during a handshake) register an interceptor for that scope
instead of wrapping the client.
"""

import logging
from collections.abc import Awaitable, Callable, Iterator
from contextlib import contextmanager

import httpx

from admin_core.domain.exceptions import is_gateway_failure

logger = logging.getLogger(__name__)

ResponseInterceptor = Callable[[httpx.Response], Awaitable[None]]


class ResponseInterceptors:
    """Ordered registry of async response interceptors."""

    def __init__(self) -> None:
        self._interceptors: list[ResponseInterceptor] = []

    def add(self, interceptor: ResponseInterceptor) -> None:
        self._interceptors.append(interceptor)

    def remove(self, interceptor: ResponseInterceptor) -> None:
        if interceptor in self._interceptors:
            self._interceptors.remove(interceptor)

    @contextmanager
    def installed(self, interceptor: ResponseInterceptor) -> Iterator[ResponseInterceptor]:
        """Register ``interceptor`` for the duration of the ``with`` block."""
        self.add(interceptor)
        try:
            yield interceptor
        finally:
            self.remove(interceptor)

    def __len__(self) -> int:
        return len(self._interceptors)

    async def __call__(self, response: httpx.Response) -> None:
        # Copy: an interceptor may unregister itself.
        for interceptor in list(self._interceptors):
            await interceptor(response)


class GatewayFailureDetector:
    """Interceptor that remembers whether any response was a 502."""

    def __init__(self, operation: str):
        self.operation = operation
        self.detected = False

    async def __call__(self, response: httpx.Response) -> None:
        if response.status_code == 502:
            self.detected = True
            logger.error(
                "502 Bad Gateway detected during %s: %s %s",
                self.operation,
                response.request.method,
                response.request.url,
            )

    def observe_error(self, exc: BaseException) -> bool:
        """Record ``exc`` if it signals a gateway failure; return the detection state."""
        if is_gateway_failure(exc):
            if not self.detected:
                logger.error("502 Bad Gateway detected in %s error: %s", self.operation, exc)
            self.detected = True
        return self.detected
