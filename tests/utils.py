"""Test utilities: record builders and an in-memory row provider."""

import asyncio
from collections.abc import Mapping, Sequence

from langrank.config import SourceConfig
from langrank.data_types import RawRow, Source, SourceRecord


def record(
    source: Source,
    language: str,
    percentage: float | None,
    rank: int | None = None,
) -> SourceRecord:
    return SourceRecord(
        source=source, language=language, rank=rank, percentage=percentage
    )


def tiobe(language: str, percentage: float | None, rank: int | None = None):
    return record(Source.TIOBE, language, percentage, rank)


def tecsify(language: str, percentage: float | None, rank: int | None = None):
    return record(Source.TECSIFY, language, percentage, rank)


def pypl(language: str, percentage: float | None, rank: int | None = None):
    return record(Source.PYPL, language, percentage, rank)


class StaticRowProvider:
    """Row provider returning canned rows per source.

    A source mapped to an exception instance raises it instead. A source
    with no entry returns no rows.

    Example:
        provider = StaticRowProvider({Source.TIOBE: [("1", ...)]})
        pipeline = RankingPipeline({s: provider for s in Source}, sink)
    """

    def __init__(
        self,
        rows: Mapping[Source, Sequence[RawRow] | BaseException],
        delay: float = 0.0,
    ) -> None:
        self.rows = rows
        self.delay = delay
        self.calls: list[Source] = []

    async def fetch_rows(self, config: SourceConfig) -> list[RawRow]:
        self.calls.append(config.source)
        if self.delay:
            await asyncio.sleep(self.delay)
        rows = self.rows.get(config.source, [])
        if isinstance(rows, BaseException):
            raise rows
        return list(rows)


def providers(provider: StaticRowProvider) -> dict[Source, StaticRowProvider]:
    """Use one provider for every source."""
    return {source: provider for source in Source}
