"""
Diagnostics Logger

DESIGN DECISION: Nothing the engine refuses is dropped silently.
Every rejected record, skipped line, blocked adjustment and priority
no-op goes through this logger, which:
1. Emits a structured log line via structlog
2. Keeps an in-memory trail the caller can show to the user
3. Optionally persists events to a DiagnosticsStorage backend

A storage failure is logged but never breaks validation or simulation.
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from pfm_core.models.audit import (
    DiagnosticEvent,
    DiagnosticEventType,
    DiagnosticSeverity,
)
from pfm_core.services.storage.interface import DiagnosticsStorage, StorageError


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def get_logger(name: Optional[str] = None):
    """Get a structlog logger bound to the given module name."""
    return structlog.get_logger(name)


class DiagnosticsLogger:
    """
    Central diagnostics sink.

    One instance is usually shared by the validator and the prediction
    engine of a single caller; correlation ids keep sessions apart.
    """

    def __init__(
        self,
        storage: Optional[DiagnosticsStorage] = None,
    ):
        """
        Initialize diagnostics logger.

        Args:
            storage: Backend for persistence. If None, events are only
                     logged and kept in memory.
        """
        self._storage = storage
        self._events: list[DiagnosticEvent] = []
        self._logger = get_logger("pfm_core.diagnostics")

    @property
    def events(self) -> list[DiagnosticEvent]:
        """All recorded events, oldest first."""
        return list(self._events)

    def log(self, event: DiagnosticEvent) -> bool:
        """
        Record a diagnostic event.

        Returns True if storage write succeeded (or no storage configured).
        """
        self._events.append(event)

        log_dict = event.to_log_dict()
        if event.severity == DiagnosticSeverity.ERROR:
            self._logger.error("diagnostic_event", **log_dict)
        elif event.severity == DiagnosticSeverity.WARNING:
            self._logger.warning("diagnostic_event", **log_dict)
        elif event.severity == DiagnosticSeverity.DEBUG:
            self._logger.debug("diagnostic_event", **log_dict)
        else:
            self._logger.info("diagnostic_event", **log_dict)

        if self._storage:
            try:
                return self._storage.append_event(event)
            except StorageError as e:
                self._logger.error(
                    "diagnostics_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    def events_for(self, correlation_id: UUID) -> list[DiagnosticEvent]:
        """Events of one check or one prediction session."""
        return [e for e in self._events if e.correlation_id == correlation_id]

    def events_of_type(self, event_type: DiagnosticEventType) -> list[DiagnosticEvent]:
        return [e for e in self._events if e.event_type == event_type]

    def messages(self, correlation_id: Optional[UUID] = None) -> list[str]:
        """Human-readable reasons, in the order they were recorded."""
        events = self._events if correlation_id is None else self.events_for(correlation_id)
        return [e.description for e in events]

    def clear(self) -> None:
        """Forget the in-memory trail (persisted events are untouched)."""
        self._events = []


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a ledger check or prediction session.
    """
    return uuid4()
