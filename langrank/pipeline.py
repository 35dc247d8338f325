"""The ranking pipeline.

One linear pass: fetch and adapt the three sources concurrently, persist
their raw extracts, aggregate, persist the averaged table. A failing source
contributes nothing; a failing write loses only its own dataset.

Example::

    async with HttpRowProvider() as http, PlaywrightRowProvider.open() as pw:
        pipeline = RankingPipeline(
            providers=providers_for(DEFAULT_SOURCES, http=http, browser=pw),
            sink=ExcelSink(Path("out")),
        )
        result = await pipeline.run()
    print(result.summary())
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from langrank.adapters import RowProvider, SourceAdapter, SourceResult
from langrank.aggregation import aggregate
from langrank.common.exceptions import SourceFetchFailure
from langrank.config import (
    AVERAGE_OUTPUT_NAME,
    AVERAGE_SHEET_LABEL,
    DEFAULT_SOURCES,
    SourceConfig,
)
from langrank.data_types import (
    DEFAULT_ALLOW_LIST,
    AggregatedEntry,
    LanguageAllowList,
    Source,
    SourceRecord,
)
from langrank.sinks import DatasetSink, TabularRecord

logger = logging.getLogger(__name__)


def providers_for(
    sources: Sequence[SourceConfig],
    http: RowProvider,
    browser: RowProvider | None = None,
) -> dict[Source, RowProvider]:
    """Assign each source the provider its configuration calls for.

    Sources needing a browser are left out when ``browser`` is None; the
    pipeline then reports them as failed.
    """
    providers: dict[Source, RowProvider] = {}
    for config in sources:
        if not config.requires_browser:
            providers[config.source] = http
        elif browser is not None:
            providers[config.source] = browser
    return providers


class MissingProviderError(LookupError):
    """Raised in place of a fetch when a source has no row provider.

    The pipeline wraps it in SourceFetchFailure, so the source is reported
    as failed like any other that could not be collected.
    """


@dataclass(frozen=True)
class PipelineResult:
    """Everything one run produced.

    Attributes:
        sources: Per-source results, in fold order.
        averages: The aggregated table.
        dataset_names: File names of the four datasets, raw ones first.
        written: Paths that were written.
        skipped: Dataset names that had no records.
        failed: Dataset names whose write raised, with the error.
    """

    sources: tuple[SourceResult, ...]
    averages: list[AggregatedEntry]
    dataset_names: tuple[str, ...]
    written: list[Path] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed: dict[str, BaseException] = field(default_factory=dict)

    def records_for(self, source: Source) -> list[SourceRecord]:
        for result in self.sources:
            if result.source is source:
                return result.records
        return []

    @property
    def failures(self) -> list[SourceFetchFailure]:
        return [r.failure for r in self.sources if r.failure is not None]

    def summary(self) -> str:
        """The consolidated completion line."""
        names = list(self.dataset_names)
        if len(names) > 1:
            listed = f"{', '.join(names[:-1])} and {names[-1]}"
        else:
            listed = "".join(names)
        return f"Data saved to {listed}"


class RankingPipeline:
    """Collects every configured source and writes the four datasets.

    Args:
        providers: Row provider per source.
        sink: Where datasets are persisted.
        allow_list: Languages kept by every adapter.
        sources: Source configurations, in fold order (TIOBE, Tecsify,
            PYPL).
        timeout: Optional per-source bound, in seconds, on fetching.
    """

    def __init__(
        self,
        providers: Mapping[Source, RowProvider],
        sink: DatasetSink,
        allow_list: LanguageAllowList = DEFAULT_ALLOW_LIST,
        sources: Sequence[SourceConfig] = DEFAULT_SOURCES,
        timeout: float | None = None,
    ) -> None:
        self.providers = providers
        self.sink = sink
        self.allow_list = allow_list
        self.sources = tuple(sources)
        self.timeout = timeout

    async def collect(self) -> tuple[SourceResult, ...]:
        """Fetch and adapt all sources concurrently."""
        return tuple(
            await asyncio.gather(
                *(self._collect_one(config) for config in self.sources)
            )
        )

    async def _collect_one(self, config: SourceConfig) -> SourceResult:
        adapter = SourceAdapter(config, self.allow_list)
        provider = self.providers.get(config.source)
        if provider is None:
            failure = SourceFetchFailure(
                config.source,
                MissingProviderError(
                    f"no row provider for {config.source.value}"
                ),
            )
            logger.warning(failure.message)
            return SourceResult(config.source, failure=failure)
        return await adapter.collect(provider, timeout=self.timeout)

    async def run(self) -> PipelineResult:
        """Run the whole pipeline once.

        Returns:
            The PipelineResult. Source failures and write failures are
            recorded on it rather than raised.
        """
        source_results = await self.collect()
        by_source = {r.source: r.records for r in source_results}

        averages = aggregate(
            by_source.get(Source.TIOBE),
            by_source.get(Source.TECSIFY),
            by_source.get(Source.PYPL),
        )

        datasets: list[tuple[str, Sequence[TabularRecord], str]] = [
            (config.output_name, by_source[config.source], config.sheet_label)
            for config in self.sources
        ]
        datasets.append((AVERAGE_OUTPUT_NAME, averages, AVERAGE_SHEET_LABEL))

        result = PipelineResult(
            sources=source_results,
            averages=averages,
            dataset_names=tuple(
                self.sink.path_for(name).name for name, _, _ in datasets
            ),
        )
        await self._persist_all(datasets, result)
        return result

    async def _persist_all(
        self,
        datasets: list[tuple[str, Sequence[TabularRecord], str]],
        result: PipelineResult,
    ) -> None:
        outcomes = await asyncio.gather(
            *(
                asyncio.to_thread(self.sink.persist, name, records, label)
                for name, records, label in datasets
            ),
            return_exceptions=True,
        )
        for (name, _, _), outcome in zip(datasets, outcomes):
            if isinstance(outcome, BaseException):
                logger.error(f"Failed to save {name}: {outcome}")
                result.failed[name] = outcome
            elif outcome is None:
                result.skipped.append(name)
            else:
                result.written.append(outcome)
