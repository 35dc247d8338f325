"""Source configuration.

Each upstream source is described by one frozen SourceConfig: where to find
it, which rows to read, how to interpret the cells, and where its raw
extract is persisted. Nothing here is user-supplied except the allow-list,
which can be loaded from a file.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from langrank.data_types import (
    ColumnMapping,
    LanguageAllowList,
    Source,
)

PYPL_FOOTER_MARKER = "© Pierre Carbonnelle"

AVERAGE_OUTPUT_NAME = "Average_Data"
AVERAGE_SHEET_LABEL = "Average"


@dataclass(frozen=True)
class SourceConfig:
    """Everything needed to collect and persist one source.

    Attributes:
        source: Which provider this is.
        url: Page holding the ranking table.
        row_selector: CSS selector for the table's data rows.
        mapping: Cell positions and cleanup rules for the rows.
        output_name: Dataset name handed to the sink (file stem).
        sheet_label: Label of the persisted table.
        requires_browser: Whether the table is only present after
            JavaScript runs.
    """

    source: Source
    url: str
    row_selector: str
    mapping: ColumnMapping
    output_name: str
    sheet_label: str
    requires_browser: bool = False


TIOBE_CONFIG = SourceConfig(
    source=Source.TIOBE,
    url="https://www.tiobe.com/tiobe-index/",
    row_selector="#top20 tbody tr",
    mapping=ColumnMapping(language_index=4, rank_index=0, percentage_index=5),
    output_name="TIOBE_Data",
    sheet_label="TIOBE",
)

TECSIFY_CONFIG = SourceConfig(
    source=Source.TECSIFY,
    url="https://tecsify.com/blog/top-lenguajes-2024/",
    row_selector="figure.wp-block-table table tbody tr",
    mapping=ColumnMapping(language_index=4, rank_index=0, percentage_index=5),
    output_name="Tecsify_Data",
    sheet_label="Tecsify",
)

PYPL_CONFIG = SourceConfig(
    source=Source.PYPL,
    url="https://pypl.github.io/PYPL.html",
    row_selector="table tbody tr",
    mapping=ColumnMapping(
        language_index=2,
        rank_index=0,
        percentage_index=3,
        rank_range=(1, 28),
        footer_markers=(PYPL_FOOTER_MARKER,),
    ),
    output_name="PYPL_Data",
    sheet_label="PYPL",
    requires_browser=True,
)

# Fold order for aggregation.
DEFAULT_SOURCES: tuple[SourceConfig, ...] = (
    TIOBE_CONFIG,
    TECSIFY_CONFIG,
    PYPL_CONFIG,
)


def source_config(
    source: Source, sources: tuple[SourceConfig, ...] = DEFAULT_SOURCES
) -> SourceConfig:
    """Look up the configuration for ``source``.

    Raises:
        KeyError: If ``sources`` has no entry for it.
    """
    for config in sources:
        if config.source is source:
            return config
    raise KeyError(source)


def load_allow_list(path: Path | str) -> LanguageAllowList:
    """Read an allow-list file: one language per line.

    Blank lines and lines starting with ``#`` are ignored. Names are
    stripped of surrounding whitespace but otherwise kept verbatim, since
    membership is case-sensitive.

    Raises:
        ValueError: If the file contains no language names.
    """
    path = Path(path)
    names = []
    for line in path.read_text(encoding="utf-8").splitlines():
        name = line.strip()
        if name and not name.startswith("#"):
            names.append(name)
    if not names:
        raise ValueError(f"No languages listed in {path}")
    return LanguageAllowList.of(names)
