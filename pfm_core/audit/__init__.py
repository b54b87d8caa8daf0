"""Diagnostics logging package."""

from pfm_core.audit.logger import (
    DiagnosticsLogger,
    create_correlation_id,
    get_logger,
)

__all__ = ["DiagnosticsLogger", "create_correlation_id", "get_logger"]
