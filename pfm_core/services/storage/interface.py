"""
Abstract Storage Interface

DESIGN DECISION: The engine never walks directories or decides where a
user's ledgers live. It talks to three small seams:
1. LedgerSource - "read a path, get lines", plus an availability check
2. ReportSink - "write a path, get lines"
3. DiagnosticsStorage - optional persistence for diagnostic events

This allows us to:
1. Feed ledgers from files, uploads or test fixtures alike
2. Keep validation and simulation free of I/O details
3. Swap the per-user directory layout without touching business logic
"""

from abc import ABC, abstractmethod
from typing import Optional

from pfm_core.exceptions import PFMError
from pfm_core.models.audit import DiagnosticEvent


class LedgerSource(ABC):
    """
    Abstract source of ledger lines.

    A source is "available" when it is a real, readable ledger: for files
    that means it exists, is a regular file, is readable and carries the
    ledger extension.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Display name (usually the path) used in diagnostics."""
        pass

    @abstractmethod
    def structural_problem(self) -> Optional[str]:
        """
        Describe why this source cannot be used.

        Returns:
            A human-readable reason, or None when the source is usable
        """
        pass

    @abstractmethod
    def read_lines(self) -> list[str]:
        """
        Read every line of the ledger, without line terminators.

        Raises:
            StorageError: If reading fails unexpectedly
        """
        pass

    def is_available(self) -> bool:
        return self.structural_problem() is None


class ReportSink(ABC):
    """Abstract destination for rendered report lines."""

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    def write_lines(self, lines: list[str]) -> None:
        """
        Replace the sink's content with the given lines.

        Raises:
            StorageError: If writing fails
        """
        pass


class DiagnosticsStorage(ABC):
    """
    Abstract interface for diagnostic event storage.

    Diagnostics are append-only - we never delete or modify them.
    """

    @abstractmethod
    def append_event(self, event: DiagnosticEvent) -> bool:
        """
        Append a diagnostic event.

        Returns:
            True if stored successfully
        """
        pass


class StorageError(PFMError):
    """Base exception for storage operations."""
    pass
