"""Dataset sinks: persist a named list of records as one labeled table.

Every sink shares the same contract:

- An empty (or None) record list writes nothing, logs which file would
  have been written, and returns None.
- Otherwise one table is written, one row per record, columns taken from
  the record's ``as_row()``.
- Writes are all-or-nothing. The table goes to a temporary sibling file
  that replaces the target only once it is complete.

Example::

    sink = ExcelSink(Path("out"))
    sink.persist("TIOBE_Data", records, "TIOBE")   # out/TIOBE_Data.xlsx
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any, Protocol, TextIO

import pandas as pd

from langrank.common.exceptions import DatasetWriteException

logger = logging.getLogger(__name__)


class TabularRecord(Protocol):
    def as_row(self) -> dict[str, Any]: ...


class DatasetSink(Protocol):
    """Anything that can persist a named dataset."""

    def persist(
        self,
        name: str,
        records: Sequence[TabularRecord] | None,
        label: str,
    ) -> Path | None: ...

    def path_for(self, name: str) -> Path: ...


class FileSink:
    """Base class for sinks writing one file per dataset.

    Subclasses set ``suffix`` and implement ``_write``.

    Args:
        output_dir: Directory the files are written to. Created on first
            write if missing.
    """

    suffix: str = ""

    def __init__(self, output_dir: Path | str = ".") -> None:
        self.output_dir = Path(output_dir)

    def path_for(self, name: str) -> Path:
        return self.output_dir / f"{name}{self.suffix}"

    def persist(
        self,
        name: str,
        records: Sequence[TabularRecord] | None,
        label: str,
    ) -> Path | None:
        """Write ``records`` as the dataset ``name``.

        Args:
            name: Dataset name; the file stem.
            records: Records to write.
            label: Table label (sheet name for spreadsheets).

        Returns:
            The written path, or None if there was nothing to write.

        Raises:
            DatasetWriteException: If the file could not be written. No
                partial file is left behind.
        """
        path = self.path_for(name)
        if not records:
            logger.warning(f"No data to save in {path.name}")
            return None

        rows = [record.as_row() for record in records]
        _atomic_write(path, lambda tmp: self._write(tmp, rows, label))
        logger.info(f"Saved {len(rows)} rows to {path}")
        return path

    def _write(
        self, path: Path, rows: list[dict[str, Any]], label: str
    ) -> None:
        raise NotImplementedError


class ExcelSink(FileSink):
    """Writes each dataset as an .xlsx workbook with a single sheet."""

    suffix = ".xlsx"

    def _write(
        self, path: Path, rows: list[dict[str, Any]], label: str
    ) -> None:
        frame = pd.DataFrame.from_records(rows)
        with pd.ExcelWriter(path, engine="openpyxl") as writer:
            frame.to_excel(writer, sheet_name=label, index=False)


class JsonlSink(FileSink):
    """Writes each dataset as JSON lines, one object per record.

    The label is recorded on every line under ``"dataset"``.
    """

    suffix = ".jsonl"

    def _write(
        self, path: Path, rows: list[dict[str, Any]], label: str
    ) -> None:
        with path.open("w", encoding="utf-8") as file_handle:
            for row in rows:
                _write_json_line(file_handle, {"dataset": label, **row})


def _write_json_line(file_handle: TextIO, data: dict[str, Any]) -> None:
    json.dump(data, file_handle, ensure_ascii=False)
    file_handle.write("\n")


def _default_file_mode() -> int:
    # the umask can only be read by setting it
    umask = os.umask(0)
    os.umask(umask)
    return 0o666 & ~umask


# mkstemp creates 0600 files; finished datasets get the usual umask mode
_FILE_MODE = _default_file_mode()


def _atomic_write(path: Path, write: Callable[[Path], None]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{path.stem}.", suffix=path.suffix, dir=path.parent
    )
    os.close(fd)
    tmp_path = Path(tmp_name)
    try:
        write(tmp_path)
        os.chmod(tmp_path, _FILE_MODE)
        os.replace(tmp_path, path)
    except Exception as e:
        tmp_path.unlink(missing_ok=True)
        raise DatasetWriteException(path, e) from e


SINKS: dict[str, type[FileSink]] = {
    "xlsx": ExcelSink,
    "jsonl": JsonlSink,
}
