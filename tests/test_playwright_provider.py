"""Integration tests for PlaywrightRowProvider.

These need a real browser and are deselected by default. Run them with::

    playwright install chromium
    pytest -m playwright
"""

from __future__ import annotations

from dataclasses import replace

import pytest

pytest.importorskip("playwright")

from langrank.adapters import SourceAdapter  # noqa: E402
from langrank.common.exceptions import (  # noqa: E402
    BrowserUnavailableException,
    HTMLStructuralAssumptionException,
)
from langrank.config import PYPL_CONFIG  # noqa: E402
from langrank.providers.playwright_provider import (  # noqa: E402
    PlaywrightRowProvider,
)
from tests.mock_server import PYPL_FOOTER, PYPL_ROWS  # noqa: E402

pytestmark = pytest.mark.playwright


@pytest.mark.asyncio
async def test_reads_script_built_table(server_url: str) -> None:
    """The provider shall see rows that only exist after scripts run."""
    config = replace(PYPL_CONFIG, url=f"{server_url}/PYPL-rendered.html")

    async with PlaywrightRowProvider.open(headless=True) as provider:
        rows = await provider.fetch_rows(config)

    assert rows == PYPL_ROWS
    assert rows[-1][2] == PYPL_FOOTER


@pytest.mark.asyncio
async def test_collect_applies_pypl_rules(server_url: str, allow_list) -> None:
    config = replace(PYPL_CONFIG, url=f"{server_url}/PYPL-rendered.html")
    adapter = SourceAdapter(config, allow_list)

    async with PlaywrightRowProvider.open(headless=True) as provider:
        result = await adapter.collect(provider, timeout=30.0)

    assert not result.failed
    assert [r.language for r in result.records] == [
        "Python",
        "Java",
        "JavaScript",
        "C#",
        "Go",
    ]


@pytest.mark.asyncio
async def test_missing_table_raises(server_url: str) -> None:
    config = replace(PYPL_CONFIG, url=f"{server_url}/moved")

    async with PlaywrightRowProvider.open(headless=True) as provider:
        with pytest.raises(HTMLStructuralAssumptionException):
            await provider.fetch_rows(config)


@pytest.mark.asyncio
async def test_unknown_browser_type() -> None:
    with pytest.raises(BrowserUnavailableException):
        async with PlaywrightRowProvider.open(browser_type="netscape"):
            pass
