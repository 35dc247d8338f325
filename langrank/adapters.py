"""Source adapters: raw table rows in, SourceRecords out.

All three sources go through the same routine. What differs between them
is data, not code: a ColumnMapping says which cell is which and how to
clean it, and the LanguageAllowList says which languages to keep.

Example::

    adapter = SourceAdapter(PYPL_CONFIG, DEFAULT_ALLOW_LIST)
    records = adapter.extract([("1", "↑", "Python", "28,7 %")])

    # or, to see why rows were dropped
    for outcome in adapter.classify(rows):
        print(outcome.row_index, outcome.exclusion)
"""

from __future__ import annotations

import asyncio
import logging
import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

from langrank.common.exceptions import (
    RequestTimeoutException,
    SourceFetchFailure,
)
from langrank.data_types import (
    ColumnMapping,
    LanguageAllowList,
    RawRow,
    RowExclusion,
    RowOutcome,
    Source,
    SourceRecord,
)

if TYPE_CHECKING:
    from langrank.config import SourceConfig

logger = logging.getLogger(__name__)


class RowProvider(Protocol):
    """Anything that can fetch a source's raw table rows."""

    async def fetch_rows(self, config: SourceConfig) -> list[RawRow]: ...


def parse_percentage(
    text: str | None,
    strip_percent_sign: bool = True,
    decimal_comma: bool = True,
) -> float | None:
    """Parse a rating cell such as ``"12,34%"`` or ``" 9.1 % "``.

    Returns:
        The value as a float, or None when the text is missing, unparsable
        or not finite.
    """
    if text is None or "_" in text:
        return None
    cleaned = text.strip()
    if strip_percent_sign and cleaned.endswith("%"):
        cleaned = cleaned[:-1].rstrip()
    if decimal_comma:
        cleaned = cleaned.replace(",", ".", 1)
    try:
        value = float(cleaned)
    except ValueError:
        return None
    if not math.isfinite(value):
        return None
    return value


def parse_rank(text: str | None) -> int | None:
    """Parse a rank cell. Returns None when it isn't a plain integer."""
    # int() and float() accept "1_000"; a table cell with one is garbage
    if text is None or "_" in text:
        return None
    try:
        return int(text.strip())
    except ValueError:
        return None


def _cell(row: RawRow, index: int) -> str | None:
    if index < len(row):
        return row[index]
    return None


def classify_row(
    row: RawRow,
    row_index: int,
    source: Source,
    mapping: ColumnMapping,
    allow_list: LanguageAllowList,
) -> RowOutcome:
    """Apply an extraction rule to one raw row.

    Checks run in a fixed order: empty row, language cell, footer,
    allow-list, then rank range. A percentage that fails to parse never
    drops the row; it only leaves the field empty.
    """
    if not row:
        return RowOutcome(row_index, exclusion=RowExclusion.EMPTY_ROW)

    language = (_cell(row, mapping.language_index) or "").strip()
    if not language:
        return RowOutcome(
            row_index, exclusion=RowExclusion.MISSING_LANGUAGE_CELL
        )
    if any(language.startswith(m) for m in mapping.footer_markers):
        return RowOutcome(row_index, exclusion=RowExclusion.FOOTER_ROW)
    if language not in allow_list:
        return RowOutcome(row_index, exclusion=RowExclusion.NOT_IN_ALLOW_LIST)

    rank = parse_rank(_cell(row, mapping.rank_index))
    if mapping.rank_range is not None:
        low, high = mapping.rank_range
        if rank is None:
            return RowOutcome(
                row_index, exclusion=RowExclusion.UNPARSABLE_RANK
            )
        if not low <= rank <= high:
            return RowOutcome(
                row_index, exclusion=RowExclusion.RANK_OUT_OF_RANGE
            )

    percentage = parse_percentage(
        _cell(row, mapping.percentage_index),
        strip_percent_sign=mapping.strip_percent_sign,
        decimal_comma=mapping.decimal_comma,
    )
    record = SourceRecord(
        source=source, language=language, rank=rank, percentage=percentage
    )
    return RowOutcome(row_index, record=record)


@dataclass(frozen=True)
class SourceResult:
    """What one source contributed to a run.

    Attributes:
        source: The source.
        records: Extracted records, empty when the source failed.
        failure: The failure that emptied the source, if any.
    """

    source: Source
    records: list[SourceRecord] = field(default_factory=list)
    failure: SourceFetchFailure | None = None

    @property
    def failed(self) -> bool:
        return self.failure is not None


class SourceAdapter:
    """Extracts SourceRecords for one source.

    Args:
        config: The source's configuration (mapping, URL, selector).
        allow_list: Languages to keep.
    """

    def __init__(
        self, config: SourceConfig, allow_list: LanguageAllowList
    ) -> None:
        self.config = config
        self.allow_list = allow_list

    @property
    def source(self) -> Source:
        return self.config.source

    def classify(self, raw_rows: Iterable[RawRow] | None) -> list[RowOutcome]:
        """Run the extraction rule over every row, keeping the reasons."""
        outcomes = [
            classify_row(
                row,
                index,
                self.config.source,
                self.config.mapping,
                self.allow_list,
            )
            for index, row in enumerate(raw_rows or ())
        ]
        for outcome in outcomes:
            if outcome.exclusion is not None:
                logger.debug(
                    f"{self.source.value}: dropped row {outcome.row_index} "
                    f"({outcome.exclusion.value})"
                )
        return outcomes

    def extract(self, raw_rows: Iterable[RawRow] | None) -> list[SourceRecord]:
        """Turn raw rows into records, in input order, without dedup."""
        return [
            outcome.record
            for outcome in self.classify(raw_rows)
            if outcome.record is not None
        ]

    async def collect(
        self, provider: RowProvider, timeout: float | None = None
    ) -> SourceResult:
        """Fetch this source's rows through ``provider`` and extract them.

        Any error from the provider degrades the source to an empty record
        list; it is logged and returned on the result, never raised.

        Args:
            provider: Row provider to fetch from.
            timeout: Optional bound in seconds on the fetch.
        """
        try:
            try:
                raw_rows: Sequence[RawRow] = await asyncio.wait_for(
                    provider.fetch_rows(self.config), timeout
                )
            except asyncio.TimeoutError as e:
                raise RequestTimeoutException(
                    url=self.config.url, timeout_seconds=timeout or 0
                ) from e
            records = self.extract(raw_rows)
        except Exception as e:
            failure = SourceFetchFailure(self.source, e)
            logger.error(
                failure.message,
                extra={"source": self.source.value, "url": self.config.url},
            )
            return SourceResult(self.source, failure=failure)

        logger.info(
            f"{self.source.value}: {len(records)} records "
            f"from {len(raw_rows)} rows"
        )
        return SourceResult(self.source, records=records)
