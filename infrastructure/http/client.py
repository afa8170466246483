"""
Pooled HTTP clients for backend collaborators.

Each backend gets one reusable httpx.AsyncClient per process so TCP
connections are shared across requests. Per-call read budgets are passed
at request time; only connection setup is bounded here.
"""

from typing import Optional

import httpx  # type: ignore

from core.constants import (
    HTTP_CONNECT_TIMEOUT,
    HTTP_KEEPALIVE_EXPIRY,
    HTTP_MAX_CONNECTIONS,
    HTTP_MAX_KEEPALIVE_CONNECTIONS,
    HTTP_POOL_TIMEOUT,
)
from core.logger import logger
from core.messages import LogMessages


HTTP_LIMITS = httpx.Limits(
    max_keepalive_connections=HTTP_MAX_KEEPALIVE_CONNECTIONS,
    max_connections=HTTP_MAX_CONNECTIONS,
    keepalive_expiry=HTTP_KEEPALIVE_EXPIRY,
)


def build_timeout(seconds: float) -> httpx.Timeout:
    """Timeout where read/write get the call budget and connect stays short."""
    return httpx.Timeout(
        seconds,
        connect=min(HTTP_CONNECT_TIMEOUT, seconds),
        pool=HTTP_POOL_TIMEOUT,
    )


class BackendHttpClient:
    """
    Lazily created, reusable AsyncClient bound to one backend base URL.

    Tests pass a transport (httpx.MockTransport) instead of a live server.
    """

    def __init__(
        self,
        backend: str,
        base_url: str,
        default_timeout: float,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.backend = backend
        self.base_url = base_url.rstrip("/")
        self.default_timeout = default_timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def get(self) -> httpx.AsyncClient:
        """Get or create the pooled client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                limits=HTTP_LIMITS,
                timeout=build_timeout(self.default_timeout),
                transport=self._transport,
            )
            logger.info(
                LogMessages.HTTP_CLIENT_CREATED.format(
                    backend=self.backend, base_url=self.base_url
                )
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None
