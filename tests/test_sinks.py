"""Tests for the dataset sinks.

Verifies that:
1. A non-empty dataset becomes exactly one labeled table, one row per
   record, with the record's own columns.
2. An empty or missing dataset writes nothing and logs the file name.
3. A failing write leaves neither the target nor a temporary file behind.
"""

from __future__ import annotations

import json
import logging
import os
import stat
from pathlib import Path

import pandas as pd
import pytest
from openpyxl import load_workbook

from langrank.common.exceptions import DatasetWriteException
from langrank.data_types import AggregatedEntry
from langrank.sinks import SINKS, ExcelSink, JsonlSink
from tests.utils import pypl, tecsify, tiobe


class TestExcelSink:
    def test_writes_single_labeled_sheet(self, tmp_path: Path) -> None:
        sink = ExcelSink(tmp_path)
        records = [tiobe("Python", 15.39, rank=1), tiobe("Go", 1.93, rank=7)]

        path = sink.persist("TIOBE_Data", records, "TIOBE")

        assert path == tmp_path / "TIOBE_Data.xlsx"
        workbook = load_workbook(path)
        assert workbook.sheetnames == ["TIOBE"]

        frame = pd.read_excel(path, sheet_name="TIOBE")
        assert list(frame.columns) == [
            "Source",
            "Language",
            "Rank",
            "Percentage",
        ]
        assert frame["Language"].tolist() == ["Python", "Go"]
        assert frame["Rank"].tolist() == [1, 7]
        assert frame["Percentage"].tolist() == [15.39, 1.93]
        assert frame["Source"].tolist() == ["TIOBE", "TIOBE"]

    def test_pypl_uses_share_column(self, tmp_path: Path) -> None:
        path = ExcelSink(tmp_path).persist(
            "PYPL_Data", [pypl("Python", 28.59, rank=1)], "PYPL"
        )

        frame = pd.read_excel(path, sheet_name="PYPL")
        assert "Share" in frame.columns
        assert "Percentage" not in frame.columns

    def test_null_percentage_is_an_empty_cell(self, tmp_path: Path) -> None:
        path = ExcelSink(tmp_path).persist(
            "Tecsify_Data", [tecsify("Ruby", None, rank=4)], "Tecsify"
        )

        frame = pd.read_excel(path, sheet_name="Tecsify")
        assert frame.loc[0, "Language"] == "Ruby"
        assert pd.isna(frame.loc[0, "Percentage"])

    def test_average_table(self, tmp_path: Path) -> None:
        entries = [
            AggregatedEntry(
                language="Python", tiobe=23.5, tecsify=20.0, average=21.75
            )
        ]

        path = ExcelSink(tmp_path).persist("Average_Data", entries, "Average")

        frame = pd.read_excel(path, sheet_name="Average")
        assert list(frame.columns) == [
            "Language",
            "TIOBE",
            "Tecsify",
            "PYPL",
            "Average",
        ]
        assert frame.loc[0, "Average"] == 21.75
        assert pd.isna(frame.loc[0, "PYPL"])

    def test_overwrites_existing_file(self, tmp_path: Path) -> None:
        sink = ExcelSink(tmp_path)
        sink.persist("TIOBE_Data", [tiobe("Python", 1.0)], "TIOBE")

        path = sink.persist("TIOBE_Data", [tiobe("Go", 2.0)], "TIOBE")

        frame = pd.read_excel(path, sheet_name="TIOBE")
        assert frame["Language"].tolist() == ["Go"]

    def test_creates_output_dir(self, tmp_path: Path) -> None:
        sink = ExcelSink(tmp_path / "nested" / "out")

        path = sink.persist("TIOBE_Data", [tiobe("Python", 1.0)], "TIOBE")

        assert path is not None
        assert path.exists()


class TestEmptyDatasets:
    @pytest.mark.parametrize("records", [[], None])
    def test_empty_writes_nothing(
        self, tmp_path: Path, caplog, records
    ) -> None:
        sink = ExcelSink(tmp_path)

        with caplog.at_level(logging.WARNING, logger="langrank.sinks"):
            path = sink.persist("PYPL_Data", records, "PYPL")

        assert path is None
        assert list(tmp_path.iterdir()) == []
        assert "No data to save in PYPL_Data.xlsx" in caplog.text

    def test_empty_leaves_existing_file_alone(self, tmp_path: Path) -> None:
        sink = ExcelSink(tmp_path)
        path = sink.persist("TIOBE_Data", [tiobe("Python", 1.0)], "TIOBE")
        before = path.read_bytes()

        assert sink.persist("TIOBE_Data", [], "TIOBE") is None

        assert path.read_bytes() == before


class TestAtomicWrites:
    def test_failing_write_leaves_nothing(self, tmp_path: Path) -> None:
        class BrokenSink(ExcelSink):
            def _write(self, path, rows, label):
                path.write_bytes(b"partial")
                raise OSError("disk full")

        sink = BrokenSink(tmp_path)

        with pytest.raises(DatasetWriteException) as exc_info:
            sink.persist("TIOBE_Data", [tiobe("Python", 1.0)], "TIOBE")

        assert exc_info.value.path == tmp_path / "TIOBE_Data.xlsx"
        assert isinstance(exc_info.value.cause, OSError)
        assert list(tmp_path.iterdir()) == []

    def test_failing_write_keeps_previous_file(self, tmp_path: Path) -> None:
        ExcelSink(tmp_path).persist(
            "TIOBE_Data", [tiobe("Python", 1.0)], "TIOBE"
        )

        class BrokenSink(ExcelSink):
            def _write(self, path, rows, label):
                raise ValueError("bad sheet")

        with pytest.raises(DatasetWriteException):
            BrokenSink(tmp_path).persist(
                "TIOBE_Data", [tiobe("Go", 2.0)], "TIOBE"
            )

        frame = pd.read_excel(tmp_path / "TIOBE_Data.xlsx")
        assert frame["Language"].tolist() == ["Python"]
        assert [p.name for p in tmp_path.iterdir()] == ["TIOBE_Data.xlsx"]


@pytest.mark.skipif(os.name == "nt", reason="POSIX file modes")
class TestFileModes:
    @pytest.fixture
    def expected_mode(self) -> int:
        umask = os.umask(0)
        os.umask(umask)
        return 0o666 & ~umask

    @pytest.mark.parametrize("sink_class", [ExcelSink, JsonlSink])
    def test_written_file_follows_umask(
        self, tmp_path: Path, expected_mode: int, sink_class
    ) -> None:
        """Datasets shall not stay owner-only like the temporary file."""
        path = sink_class(tmp_path).persist(
            "TIOBE_Data", [tiobe("Python", 1.0)], "TIOBE"
        )

        assert stat.S_IMODE(path.stat().st_mode) == expected_mode


class TestJsonlSink:
    def test_one_line_per_record(self, tmp_path: Path) -> None:
        path = JsonlSink(tmp_path).persist(
            "Tecsify_Data",
            [tecsify("Python", 16.12, rank=1), tecsify("Ruby", None)],
            "Tecsify",
        )

        assert path == tmp_path / "Tecsify_Data.jsonl"
        lines = path.read_text(encoding="utf-8").splitlines()
        assert [json.loads(line) for line in lines] == [
            {
                "dataset": "Tecsify",
                "Source": "Tecsify",
                "Language": "Python",
                "Rank": 1,
                "Percentage": 16.12,
            },
            {
                "dataset": "Tecsify",
                "Source": "Tecsify",
                "Language": "Ruby",
                "Rank": None,
                "Percentage": None,
            },
        ]

    def test_non_ascii_is_kept(self, tmp_path: Path) -> None:
        path = JsonlSink(tmp_path).persist(
            "Average_Data",
            [AggregatedEntry(language="C#", pypl=6.6, average=6.6)],
            "Promedio ñ",
        )

        assert "Promedio ñ" in path.read_text(encoding="utf-8")


def test_sink_registry() -> None:
    assert SINKS["xlsx"] is ExcelSink
    assert SINKS["jsonl"] is JsonlSink
    path = ExcelSink("out").path_for("PYPL_Data")
    assert path == Path("out") / "PYPL_Data.xlsx"
