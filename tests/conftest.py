"""Shared fixtures for the langrank tests."""

import asyncio
import socket
import threading
from collections.abc import Generator
from contextlib import closing
from dataclasses import replace

import pytest
from aiohttp import web

from langrank.config import DEFAULT_SOURCES, SourceConfig
from langrank.data_types import DEFAULT_ALLOW_LIST, LanguageAllowList, Source
from tests.mock_server import create_app


@pytest.fixture
def allow_list() -> LanguageAllowList:
    return DEFAULT_ALLOW_LIST


# =============================================================================
# aiohttp test server fixtures
# =============================================================================


def find_free_port() -> int:
    """Find a free port on localhost."""
    with closing(socket.socket(socket.AF_INET, socket.SOCK_STREAM)) as s:
        s.bind(("", 0))
        s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        return s.getsockname()[1]


class AioHttpTestServer:
    """Wrapper to run aiohttp server in a background thread."""

    def __init__(self, app: web.Application, port: int) -> None:
        self.app = app
        self.port = port
        self.host = "127.0.0.1"
        self._loop: asyncio.AbstractEventLoop | None = None
        self._runner: web.AppRunner | None = None
        self._thread: threading.Thread | None = None
        self._started = threading.Event()

    @property
    def url(self) -> str:
        """Get the base URL of the server."""
        return f"http://{self.host}:{self.port}"

    def start(self) -> None:
        """Start the server and wait until it accepts connections."""
        self._thread = threading.Thread(target=self._run_server, daemon=True)
        self._thread.start()
        self._started.wait(timeout=5.0)

    def _run_server(self) -> None:
        self._loop = asyncio.new_event_loop()
        asyncio.set_event_loop(self._loop)

        async def start() -> None:
            self._runner = web.AppRunner(self.app)
            await self._runner.setup()
            site = web.TCPSite(self._runner, self.host, self.port)
            await site.start()

        self._loop.run_until_complete(start())
        self._started.set()
        self._loop.run_forever()

    def stop(self) -> None:
        """Stop the server and clean up resources."""
        if self._loop and self._runner:
            future = asyncio.run_coroutine_threadsafe(
                self._runner.cleanup(), self._loop
            )
            future.result(timeout=2.0)

        if self._loop:
            self._loop.call_soon_threadsafe(self._loop.stop)

        if self._thread:
            self._thread.join(timeout=2.0)


@pytest.fixture
def ranking_server() -> Generator[AioHttpTestServer, None, None]:
    """Start an aiohttp server serving the mock ranking pages.

    Yields:
        AioHttpTestServer with the mock app running on a free port.
    """
    server = AioHttpTestServer(create_app(), find_free_port())
    server.start()
    yield server
    server.stop()


@pytest.fixture
def server_url(ranking_server: AioHttpTestServer) -> str:
    return ranking_server.url


@pytest.fixture
def local_sources(server_url: str) -> tuple[SourceConfig, ...]:
    """The default sources, pointed at the mock server."""
    urls = {
        Source.TIOBE: f"{server_url}/tiobe-index/",
        Source.TECSIFY: f"{server_url}/blog/top-lenguajes-2024/",
        Source.PYPL: f"{server_url}/PYPL.html",
    }
    return tuple(
        replace(config, url=urls[config.source])
        for config in DEFAULT_SOURCES
    )
