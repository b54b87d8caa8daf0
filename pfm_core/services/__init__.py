"""Services package."""

from pfm_core.services.storage import (
    DiagnosticsStorage,
    FileDiagnosticsStorage,
    FileLedgerSource,
    FileReportSink,
    InMemoryLedgerSource,
    InMemoryReportSink,
    LedgerSource,
    ReportSink,
    StorageError,
    as_ledger_source,
)

__all__ = [
    "DiagnosticsStorage",
    "FileDiagnosticsStorage",
    "FileLedgerSource",
    "FileReportSink",
    "InMemoryLedgerSource",
    "InMemoryReportSink",
    "LedgerSource",
    "ReportSink",
    "StorageError",
    "as_ledger_source",
]
