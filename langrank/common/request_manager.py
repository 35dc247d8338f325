"""HTTP request manager.

AsyncRequestManager encapsulates the httpx client and turns HTTP responses
into Response objects, so providers deal only in URLs and pages.
"""

from __future__ import annotations

import logging
import ssl
from typing import Any

import httpx

from langrank.common.exceptions import (
    HTMLResponseAssumptionException,
    RequestTimeoutException,
)
from langrank.data_types import Response

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
)


class AsyncRequestManager:
    """Manages HTTP requests for the async providers.

    This class encapsulates:

    - httpx.AsyncClient lifecycle
    - Fetching a URL
    - Response transformation and status checks

    Example::

        async with AsyncRequestManager(timeout=30.0) as manager:
            response = await manager.get("https://www.tiobe.com/tiobe-index/")
    """

    def __init__(
        self,
        ssl_context: ssl.SSLContext | None = None,
        timeout: float | None = None,
        user_agent: str = DEFAULT_USER_AGENT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the request manager.

        Args:
            ssl_context: Optional SSL context for HTTPS connections.
            timeout: Request timeout in seconds. None means no timeout.
            user_agent: User-Agent header sent with every request.
            transport: Optional httpx transport, mainly for tests.
        """
        self.timeout = timeout

        client_kwargs: dict[str, Any] = {
            "timeout": timeout,
            "follow_redirects": True,
            "headers": {"User-Agent": user_agent},
        }
        if ssl_context:
            client_kwargs["verify"] = ssl_context
        if transport is not None:
            client_kwargs["transport"] = transport
        self._client = httpx.AsyncClient(**client_kwargs)

    async def close(self) -> None:
        """Close the HTTP client and release resources."""
        await self._client.aclose()

    async def __aenter__(self) -> AsyncRequestManager:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def get(self, url: str) -> Response:
        """Fetch ``url`` and return the Response.

        Raises:
            HTMLResponseAssumptionException: If the status is not 2xx.
            RequestTimeoutException: If the request times out.
        """
        try:
            http_response = await self._client.get(url)
        except httpx.TimeoutException as e:
            raise RequestTimeoutException(
                url=url, timeout_seconds=self.timeout or 0
            ) from e

        if not http_response.is_success:
            raise HTMLResponseAssumptionException(
                status_code=http_response.status_code,
                expected_codes=[200],
                url=url,
            )

        logger.debug(
            f"GET {url} -> {http_response.status_code} "
            f"({len(http_response.content)} bytes)"
        )
        return Response(
            status_code=http_response.status_code,
            url=str(http_response.url),
            content=http_response.content,
        )
