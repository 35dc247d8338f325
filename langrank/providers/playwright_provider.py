"""Row provider for sources whose table is built by JavaScript.

The provider renders the page in a real browser, waits for the network to
settle, serializes the rendered DOM to HTML and reads the rows with the
same lxml routine as the HTTP provider. Live browser objects never leave
this module.

Key features:
- DOM snapshot model, so extraction is identical for both providers
- One page per fetch, so concurrent fetches don't share browser state
- Browser lifecycle management through PlaywrightRowProvider.open()
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from playwright.async_api import (
    BrowserContext,
    Error as PlaywrightError,
    async_playwright,
)
from playwright.async_api import (
    TimeoutError as PlaywrightTimeoutError,
)

from langrank.common.checked_html import parse_table_rows
from langrank.common.exceptions import (
    BrowserUnavailableException,
    RequestTimeoutException,
)
from langrank.config import SourceConfig
from langrank.data_types import RawRow

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = logging.getLogger(__name__)


class PlaywrightRowProvider:
    """Renders pages in a browser context and reads the configured table.

    Args:
        browser_context: Playwright browser context to open pages in.
        wait_until: Load state to reach before the DOM snapshot.
        navigation_timeout: Navigation timeout in seconds (None = default).

    Example:
        async with PlaywrightRowProvider.open(headless=True) as provider:
            rows = await provider.fetch_rows(PYPL_CONFIG)
    """

    def __init__(
        self,
        browser_context: BrowserContext,
        wait_until: str = "networkidle",
        navigation_timeout: float | None = None,
    ) -> None:
        self.browser_context = browser_context
        self.wait_until = wait_until
        self.navigation_timeout = navigation_timeout

    @classmethod
    @asynccontextmanager
    async def open(
        cls,
        browser_type: str = "chromium",
        headless: bool = True,
        locale: str = "en-US",
        user_agent: str | None = None,
        **kwargs: Any,
    ) -> AsyncIterator[PlaywrightRowProvider]:
        """Start Playwright and yield a provider bound to a fresh context.

        Args:
            browser_type: "chromium", "firefox" or "webkit".
            headless: Run the browser without a window.
            locale: Browser locale.
            user_agent: Custom user agent (None = browser default).
            **kwargs: Passed to __init__.

        Raises:
            BrowserUnavailableException: If Playwright or the browser cannot
                be started.
        """
        try:
            playwright = await async_playwright().start()
        except Exception as e:
            raise BrowserUnavailableException(browser_type, e) from e

        try:
            try:
                browser_launcher = getattr(playwright, browser_type)
                browser = await browser_launcher.launch(headless=headless)
            except (AttributeError, PlaywrightError) as e:
                raise BrowserUnavailableException(browser_type, e) from e

            try:
                context_kwargs: dict[str, Any] = {"locale": locale}
                if user_agent:
                    context_kwargs["user_agent"] = user_agent
                browser_context = await browser.new_context(**context_kwargs)
                try:
                    yield cls(browser_context, **kwargs)
                finally:
                    await browser_context.close()
            finally:
                await browser.close()
        finally:
            await playwright.stop()

    async def snapshot(self, url: str) -> str:
        """Navigate to ``url`` and return the rendered DOM as HTML.

        Raises:
            RequestTimeoutException: If navigation times out.
        """
        goto_kwargs: dict[str, Any] = {"wait_until": self.wait_until}
        if self.navigation_timeout is not None:
            goto_kwargs["timeout"] = self.navigation_timeout * 1000

        page = await self.browser_context.new_page()
        try:
            await page.goto(url, **goto_kwargs)
            return await page.content()
        except PlaywrightTimeoutError as e:
            raise RequestTimeoutException(
                url=url, timeout_seconds=self.navigation_timeout or 30
            ) from e
        finally:
            await page.close()

    async def fetch_rows(self, config: SourceConfig) -> list[RawRow]:
        """Render ``config.url`` and return the rows under its selector."""
        html_content = await self.snapshot(config.url)
        rows = parse_table_rows(html_content, config.row_selector, config.url)
        logger.debug(f"{config.source.value}: {len(rows)} raw rows")
        return rows
