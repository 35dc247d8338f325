"""langrank CLI: collect the rankings and write the datasets.

Usage:
    langrank run                              # All sources, .xlsx output
    langrank run --output-dir out --format jsonl
    langrank run --language Python --language Go
    langrank run --no-browser                 # Skip browser-rendered sources
    langrank sources                          # Show configured sources
    langrank languages                        # Show the default allow-list
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import AsyncExitStack
from pathlib import Path

import click

from langrank.common.exceptions import BrowserUnavailableException
from langrank.config import DEFAULT_SOURCES, load_allow_list
from langrank.data_types import DEFAULT_ALLOW_LIST, LanguageAllowList
from langrank.pipeline import PipelineResult, RankingPipeline, providers_for
from langrank.sinks import SINKS, DatasetSink

logger = logging.getLogger(__name__)


@click.group()
@click.version_option(package_name="langrank")
def cli() -> None:
    """langrank: web-language popularity across TIOBE, Tecsify and PYPL."""


def _resolve_allow_list(
    languages: tuple[str, ...], languages_file: str | None
) -> LanguageAllowList:
    if languages and languages_file:
        raise click.UsageError(
            "Use either --language or --languages-file, not both."
        )
    if languages_file:
        try:
            return load_allow_list(languages_file)
        except ValueError as e:
            raise click.BadParameter(
                str(e), param_hint="--languages-file"
            ) from e
    if languages:
        return LanguageAllowList.of(languages)
    return DEFAULT_ALLOW_LIST


@cli.command()
@click.option(
    "--output-dir",
    type=click.Path(file_okay=False),
    default=".",
    show_default=True,
    help="Directory the datasets are written to.",
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(sorted(SINKS)),
    default="xlsx",
    show_default=True,
    help="Dataset file format.",
)
@click.option(
    "--timeout",
    type=float,
    default=None,
    help="Per-source time limit in seconds (default: none).",
)
@click.option(
    "--language",
    "languages",
    multiple=True,
    help="Language to keep (repeatable). Replaces the default allow-list.",
)
@click.option(
    "--languages-file",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="File with one language per line. Replaces the default allow-list.",
)
@click.option(
    "--browser",
    "browser_type",
    type=click.Choice(["chromium", "firefox", "webkit"]),
    default="chromium",
    show_default=True,
    help="Browser used for JavaScript-rendered sources.",
)
@click.option("--headed", is_flag=True, help="Show the browser window.")
@click.option(
    "--no-browser",
    is_flag=True,
    help="Skip sources that need a browser; they are reported as failed.",
)
@click.option("-v", "--verbose", is_flag=True, help="Verbose logging.")
def run(
    output_dir: str,
    output_format: str,
    timeout: float | None,
    languages: tuple[str, ...],
    languages_file: str | None,
    browser_type: str,
    headed: bool,
    no_browser: bool,
    verbose: bool,
) -> None:
    """Collect every source and write the raw and averaged datasets.

    \b
    Examples:
        langrank run
        langrank run --output-dir out --format jsonl --timeout 60
        langrank run --languages-file web_languages.txt
    """
    log_level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    allow_list = _resolve_allow_list(languages, languages_file)
    sink = SINKS[output_format](Path(output_dir))

    try:
        result = asyncio.run(
            _run_pipeline(
                sink=sink,
                allow_list=allow_list,
                timeout=timeout,
                browser_type=None if no_browser else browser_type,
                headless=not headed,
            )
        )
    except click.ClickException:
        raise
    except BrowserUnavailableException as e:
        raise click.ClickException(
            f"{e.message}. Install the browser with: "
            f"playwright install {browser_type}"
        ) from e
    except Exception as e:
        logger.exception("Pipeline failed")
        raise click.ClickException(f"Pipeline failed: {e}") from e

    for failure in result.failures:
        click.echo(f"Warning: {failure.message}", err=True)
    for name, error in result.failed.items():
        click.echo(f"Warning: could not save {name}: {error}", err=True)
    click.echo(result.summary())


async def _run_pipeline(
    sink: DatasetSink,
    allow_list: LanguageAllowList,
    timeout: float | None,
    browser_type: str | None,
    headless: bool,
) -> PipelineResult:
    from langrank.providers import HttpRowProvider

    async with AsyncExitStack() as stack:
        http = await stack.enter_async_context(
            HttpRowProvider(timeout=timeout)
        )
        browser = None
        if browser_type is not None:
            browser = await stack.enter_async_context(
                _open_browser(browser_type, headless)
            )
        pipeline = RankingPipeline(
            providers=providers_for(
                DEFAULT_SOURCES, http=http, browser=browser
            ),
            sink=sink,
            allow_list=allow_list,
            timeout=timeout,
        )
        return await pipeline.run()


def _open_browser(browser_type: str, headless: bool):
    try:
        from langrank.providers.playwright_provider import (
            PlaywrightRowProvider,
        )
    except ImportError as e:
        raise click.ClickException(
            f"Missing dependency: {e}. "
            "Install the 'browser' extra: pip install langrank[browser]"
        ) from e
    return PlaywrightRowProvider.open(
        browser_type=browser_type, headless=headless
    )


@cli.command()
def sources() -> None:
    """List the configured sources in aggregation order."""
    for config in DEFAULT_SOURCES:
        renderer = "browser" if config.requires_browser else "http"
        click.echo(f"{config.source.value:<8} {renderer:<8} {config.url}")
        click.echo(f"  rows:   {config.row_selector}")
        click.echo(f"  output: {config.output_name} [{config.sheet_label}]")


@cli.command()
def languages() -> None:
    """Print the default language allow-list, one per line."""
    for language in DEFAULT_ALLOW_LIST:
        click.echo(language)


def main() -> None:
    """Entry point for the ``langrank`` console script."""
    cli()
