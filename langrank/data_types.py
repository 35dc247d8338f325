"""Data types shared by the adapters, the aggregator and the sinks.

These types are designed to be:

1. Immutable - frozen dataclasses and frozen pydantic models
2. Explicit - a row that produces no record says why (RowExclusion)
3. Tabular - every persisted record knows its own spreadsheet row

SourceRecord and AggregatedEntry are pydantic models so the sinks can rely
on validated field types. The configuration-side values (LanguageAllowList,
ColumnMapping) are plain frozen dataclasses.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

# A raw table row as handed over by a row provider: the text of each cell,
# in document order.
RawRow = tuple[str, ...]


@dataclass(frozen=True)
class Response:
    """A page fetched over HTTP.

    Attributes:
        status_code: HTTP status code.
        url: Final URL of the page, after redirects.
        content: Raw body bytes, left for lxml to decode.
    """

    status_code: int
    url: str
    content: bytes


class Source(Enum):
    """The upstream ranking providers.

    The declaration order is the fold order used by the aggregator.
    """

    TIOBE = "TIOBE"
    TECSIFY = "Tecsify"
    PYPL = "PYPL"

    @property
    def percentage_column(self) -> str:
        """Column label for the percentage field in raw extracts."""
        if self is Source.PYPL:
            return "Share"
        return "Percentage"


@dataclass(frozen=True)
class LanguageAllowList:
    """Ordered, immutable set of canonical language names.

    Membership is an exact, case-sensitive string comparison. Duplicates
    passed to the constructor are dropped, keeping first-seen order.

    Example::

        allow = LanguageAllowList(("Python", "Go"))
        "Python" in allow   # True
        "python" in allow   # False
    """

    languages: tuple[str, ...]
    _members: frozenset[str] = field(
        init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        ordered = tuple(dict.fromkeys(self.languages))
        if not ordered:
            raise ValueError("LanguageAllowList needs at least one language")
        object.__setattr__(self, "languages", ordered)
        object.__setattr__(self, "_members", frozenset(ordered))

    @classmethod
    def of(cls, languages: Iterable[str]) -> LanguageAllowList:
        """Build an allow-list from any iterable of names."""
        return cls(tuple(languages))

    def __contains__(self, language: object) -> bool:
        return language in self._members

    def __iter__(self) -> Iterator[str]:
        return iter(self.languages)

    def __len__(self) -> int:
        return len(self.languages)


DEFAULT_ALLOW_LIST = LanguageAllowList(
    (
        "JavaScript",
        "Python",
        "Ruby",
        "PHP",
        "Java",
        "TypeScript",
        "HTML",
        "CSS",
        "Go",
        "C#",
        "Swift",
    )
)


@dataclass(frozen=True)
class ColumnMapping:
    """Declarative extraction rule for one source's table.

    Attributes:
        language_index: Cell index holding the language name.
        rank_index: Cell index holding the rank.
        percentage_index: Cell index holding the rating or share.
        strip_percent_sign: Remove a trailing ``%`` before parsing.
        decimal_comma: Accept ``,`` as the decimal separator.
        rank_range: Inclusive (low, high) bounds. When set, rows whose rank
            is unparsable or outside the bounds are dropped.
        footer_markers: Language-cell prefixes identifying non-data rows
            that mimic table rows (copyright footers and the like).
    """

    language_index: int
    rank_index: int
    percentage_index: int
    strip_percent_sign: bool = True
    decimal_comma: bool = True
    rank_range: tuple[int, int] | None = None
    footer_markers: tuple[str, ...] = ()


class RowExclusion(Enum):
    """Why a raw row did not produce a SourceRecord."""

    EMPTY_ROW = "empty_row"
    MISSING_LANGUAGE_CELL = "missing_language_cell"
    FOOTER_ROW = "footer_row"
    NOT_IN_ALLOW_LIST = "not_in_allow_list"
    UNPARSABLE_RANK = "unparsable_rank"
    RANK_OUT_OF_RANGE = "rank_out_of_range"


class SourceRecord(BaseModel):
    """One (source, language) observation that survived filtering."""

    model_config = ConfigDict(frozen=True)

    source: Source = Field(..., description="Provider of the observation")
    language: str = Field(..., description="Canonical language name")
    rank: int | None = Field(None, description="Rank in the source table")
    percentage: float | None = Field(
        None, description="Rating or share, in percent"
    )

    def as_row(self) -> dict[str, Any]:
        """Spreadsheet row for the raw extract of this record's source."""
        return {
            "Source": self.source.value,
            "Language": self.language,
            "Rank": self.rank,
            self.source.percentage_column: self.percentage,
        }


@dataclass(frozen=True)
class RowOutcome:
    """Result of running the extraction rule over a single raw row.

    Exactly one of ``record`` and ``exclusion`` is set.
    """

    row_index: int
    record: SourceRecord | None = None
    exclusion: RowExclusion | None = None

    def __post_init__(self) -> None:
        if (self.record is None) == (self.exclusion is None):
            raise ValueError(
                "RowOutcome needs exactly one of record or exclusion"
            )

    @property
    def kept(self) -> bool:
        return self.record is not None


class AggregatedEntry(BaseModel):
    """Per-language combination of every source's percentage."""

    model_config = ConfigDict(frozen=True)

    language: str
    tiobe: float | None = None
    tecsify: float | None = None
    pypl: float | None = None
    average: float | None = None

    @model_validator(mode="after")
    def _average_needs_input(self) -> AggregatedEntry:
        if self.average is not None and not self.values():
            raise ValueError("average set without any source value")
        return self

    def values(self) -> list[float]:
        """The non-null source percentages, in fold order."""
        return [
            v for v in (self.tiobe, self.tecsify, self.pypl) if v is not None
        ]

    def as_row(self) -> dict[str, Any]:
        """Spreadsheet row for the averaged table."""
        return {
            "Language": self.language,
            "TIOBE": self.tiobe,
            "Tecsify": self.tecsify,
            "PYPL": self.pypl,
            "Average": self.average,
        }
