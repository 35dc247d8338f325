"""Cross-source reconciliation.

aggregate() folds the three sources' records into one AggregatedEntry per
language. The fold visits TIOBE, then Tecsify, then PYPL; each record
writes the slot named by its own source, and a later record for the same
(source, language) pair replaces an earlier one.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from decimal import ROUND_HALF_UP, Decimal
from functools import reduce
from itertools import chain
from types import MappingProxyType

from langrank.data_types import AggregatedEntry, Source, SourceRecord

_SLOTS: Mapping[Source, str] = MappingProxyType(
    {
        Source.TIOBE: "tiobe",
        Source.TECSIFY: "tecsify",
        Source.PYPL: "pypl",
    }
)

_CENT = Decimal("0.01")

# language -> partial entry with slots filled and no average yet
Partial = Mapping[str, AggregatedEntry]


def _upsert(acc: Partial, record: SourceRecord) -> Partial:
    entry = acc.get(record.language) or AggregatedEntry(
        language=record.language
    )
    updated = entry.model_copy(
        update={_SLOTS[record.source]: record.percentage}
    )
    # dict preserves the first-seen position of an existing key
    return {**acc, record.language: updated}


def average_of(values: Iterable[float | None]) -> float | None:
    """Mean of the non-null values, rounded half up to two decimals.

    The mean is rounded from its exact binary value, so 10.125 becomes
    10.13 where round() would give 10.12.

    Returns None when every value is null.
    """
    present = [v for v in values if v is not None]
    if not present:
        return None
    mean = Decimal(sum(present) / len(present))
    return float(mean.quantize(_CENT, rounding=ROUND_HALF_UP))


def _finalize(entry: AggregatedEntry) -> AggregatedEntry:
    return entry.model_copy(update={"average": average_of(entry.values())})


def aggregate(
    tiobe_records: Iterable[SourceRecord] | None,
    tecsify_records: Iterable[SourceRecord] | None,
    pypl_records: Iterable[SourceRecord] | None,
) -> list[AggregatedEntry]:
    """Combine the sources into per-language averages.

    Args:
        tiobe_records: TIOBE's records (None is treated as empty).
        tecsify_records: Tecsify's records.
        pypl_records: PYPL's records.

    Returns:
        One entry per language seen in any source, in first-seen order
        across the fold.
    """
    folded: Partial = reduce(
        _upsert,
        chain(tiobe_records or (), tecsify_records or (), pypl_records or ()),
        {},
    )
    return [_finalize(entry) for entry in folded.values()]
