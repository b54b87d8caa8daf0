"""
Local File and In-Memory Storage

File-backed implementations read ledgers from disk and write reports
and diagnostics back. In-memory implementations serve callers that
already hold the lines (uploads, batch jobs, tests).

The per-user directory layout is NOT decided here. Callers resolve the
path; these classes only read and write it.
"""

import csv
import os
from pathlib import Path
from typing import Iterable, Optional, Union

from pfm_core.config import get_settings
from pfm_core.models.audit import DiagnosticEvent
from pfm_core.services.storage.interface import (
    DiagnosticsStorage,
    LedgerSource,
    ReportSink,
    StorageError,
)


# Column order for diagnostics CSV files
DIAGNOSTIC_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "correlation_id",
    "description",
    "line_number",
    "raw_line",
    "details_json",
]

PathLike = Union[str, Path]


class FileLedgerSource(LedgerSource):
    """A ledger stored as a text file, one record per line."""

    def __init__(self, path: PathLike, extension: Optional[str] = None):
        self._path = Path(path)
        if extension is None:
            self._suffix = get_settings().ledger_suffix
        else:
            self._suffix = "." + extension.lstrip(".").lower()

    @property
    def name(self) -> str:
        return str(self._path)

    @property
    def path(self) -> Path:
        return self._path

    def structural_problem(self) -> Optional[str]:
        if not self._path.exists():
            return f"Cannot find file {self._path}"
        if not self._path.is_file():
            return f"Expected a file but found a directory: {self._path}"
        if not os.access(self._path, os.R_OK):
            return f"File is not readable: {self._path}"
        if not self._path.name.lower().endswith(self._suffix):
            return f"File must have a {self._suffix} extension: {self._path.name}"
        return None

    def read_lines(self) -> list[str]:
        try:
            with self._path.open("r", encoding="utf-8", newline="") as handle:
                return handle.read().splitlines()
        except UnicodeDecodeError as e:
            raise StorageError(
                f"File is not valid UTF-8 text: {self._path}",
                details={"path": str(self._path), "position": e.start},
            ) from e
        except OSError as e:
            raise StorageError(
                f"Error reading file {self._path}: {e}",
                details={"path": str(self._path)},
            ) from e


class InMemoryLedgerSource(LedgerSource):
    """
    A ledger whose lines are already in memory.

    Available unless constructed with a problem, which lets callers that
    performed their own checks pass a rejection through the same seam.
    """

    def __init__(
        self,
        lines: Iterable[str],
        name: str = "<memory>",
        problem: Optional[str] = None,
    ):
        self._lines = [line.rstrip("\r\n") for line in lines]
        self._name = name
        self._problem = problem

    @property
    def name(self) -> str:
        return self._name

    def structural_problem(self) -> Optional[str]:
        return self._problem

    def read_lines(self) -> list[str]:
        return list(self._lines)


class FileReportSink(ReportSink):
    """Writes report lines to a file, replacing previous content."""

    def __init__(self, path: PathLike):
        self._path = Path(path)

    @property
    def name(self) -> str:
        return str(self._path)

    def write_lines(self, lines: list[str]) -> None:
        try:
            with self._path.open("w", encoding="utf-8", newline="") as handle:
                for line in lines:
                    handle.write(line)
                    handle.write("\n")
        except OSError as e:
            raise StorageError(
                f"Error writing report {self._path}: {e}",
                details={"path": str(self._path)},
            ) from e


class InMemoryReportSink(ReportSink):
    """Keeps the last written report lines."""

    def __init__(self, name: str = "<memory>"):
        self._name = name
        self.lines: list[str] = []

    @property
    def name(self) -> str:
        return self._name

    def write_lines(self, lines: list[str]) -> None:
        self.lines = list(lines)


class FileDiagnosticsStorage(DiagnosticsStorage):
    """Appends diagnostic events to a CSV file, writing the header once."""

    def __init__(self, path: PathLike):
        self._path = Path(path)

    def append_event(self, event: DiagnosticEvent) -> bool:
        write_header = not self._path.exists() or self._path.stat().st_size == 0
        try:
            with self._path.open("a", encoding="utf-8", newline="") as handle:
                writer = csv.writer(handle)
                if write_header:
                    writer.writerow(DIAGNOSTIC_COLUMNS)
                writer.writerow(event.to_csv_row())
        except OSError as e:
            raise StorageError(
                f"Error appending diagnostics to {self._path}: {e}",
                details={"path": str(self._path)},
            ) from e
        return True


def as_ledger_source(value: Union[LedgerSource, PathLike]) -> LedgerSource:
    """Accept either a ready LedgerSource or a path to a ledger file."""
    if isinstance(value, LedgerSource):
        return value
    return FileLedgerSource(value)
