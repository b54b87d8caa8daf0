"""
Storage Services Package

Provides the seams through which the engine reads ledgers and writes
reports and diagnostics. Local files and in-memory lines are supported.
"""

from pfm_core.services.storage.interface import (
    DiagnosticsStorage,
    LedgerSource,
    ReportSink,
    StorageError,
)
from pfm_core.services.storage.local_files import (
    DIAGNOSTIC_COLUMNS,
    FileDiagnosticsStorage,
    FileLedgerSource,
    FileReportSink,
    InMemoryLedgerSource,
    InMemoryReportSink,
    as_ledger_source,
)

__all__ = [
    # Interfaces
    "DiagnosticsStorage",
    "LedgerSource",
    "ReportSink",
    # Exceptions
    "StorageError",
    # Local implementations
    "DIAGNOSTIC_COLUMNS",
    "FileDiagnosticsStorage",
    "FileLedgerSource",
    "FileReportSink",
    "InMemoryLedgerSource",
    "InMemoryReportSink",
    "as_ledger_source",
]
