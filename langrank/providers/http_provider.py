"""Row provider for sources whose table is in the served HTML."""

from __future__ import annotations

import logging
from typing import Any

from langrank.common.checked_html import parse_table_rows
from langrank.common.request_manager import AsyncRequestManager
from langrank.config import SourceConfig
from langrank.data_types import RawRow

logger = logging.getLogger(__name__)


class HttpRowProvider:
    """Fetches a page over HTTP and reads the configured table's rows.

    Args:
        request_manager: Request manager to fetch with. When omitted, one is
            created and closed together with this provider.
        timeout: Request timeout for a created request manager.

    Example::

        async with HttpRowProvider(timeout=30.0) as provider:
            rows = await provider.fetch_rows(TIOBE_CONFIG)
    """

    def __init__(
        self,
        request_manager: AsyncRequestManager | None = None,
        timeout: float | None = None,
    ) -> None:
        self._owns_manager = request_manager is None
        self.request_manager = request_manager or AsyncRequestManager(
            timeout=timeout
        )

    async def close(self) -> None:
        if self._owns_manager:
            await self.request_manager.close()

    async def __aenter__(self) -> HttpRowProvider:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def fetch_rows(self, config: SourceConfig) -> list[RawRow]:
        """Fetch ``config.url`` and return the rows under its selector.

        Raises:
            TransientException: On HTTP errors and timeouts.
            HTMLStructuralAssumptionException: If the table is missing.
        """
        response = await self.request_manager.get(config.url)
        rows = parse_table_rows(
            response.content, config.row_selector, response.url
        )
        logger.debug(f"{config.source.value}: {len(rows)} raw rows")
        return rows
