"""
Diagnostic Event Models

Every rejected record, skipped line, blocked adjustment and priority
change produces one event. This provides:
1. A human-readable reason for everything the engine refuses
2. Debugging information when a ledger does not aggregate as expected
3. A trail of what a simulation session did

DESIGN DECISION: The diagnostic trail is append-only. Events are never
edited or removed once recorded.
"""

import json
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class DiagnosticEventType(str, Enum):
    """
    Types of events the engine reports.

    Validation and ingestion events come first, simulation events after.
    """
    # Validation
    RECORD_REJECTED = "record_rejected"
    RECORD_SKIPPED = "record_skipped"
    YEAR_MISMATCH = "year_mismatch"
    LEDGER_REJECTED = "ledger_rejected"
    LEDGER_ACCEPTED = "ledger_accepted"

    # Ingestion
    SESSION_STARTED = "session_started"

    # Priorities
    PRIORITY_SET = "priority_set"
    PRIORITY_SLOTS_FULL = "priority_slots_full"
    PRIORITY_DUPLICATE = "priority_duplicate"
    PRIORITY_REMOVED = "priority_removed"
    PRIORITY_NOT_FOUND = "priority_not_found"
    PRIORITIES_CLEARED = "priorities_cleared"

    # Adjustments
    ADJUSTMENT_APPLIED = "adjustment_applied"
    ADJUSTMENT_BLOCKED = "adjustment_blocked"
    REMAINDER_PENDING = "remainder_pending"
    REMAINDER_CONFLICT = "remainder_conflict"
    REMAINDER_RESOLVED = "remainder_resolved"
    REMAINDER_CANCELLED = "remainder_cancelled"


class DiagnosticSeverity(str, Enum):
    """Severity level for diagnostic events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DiagnosticEvent(BaseModel):
    """
    A single diagnostic event.

    Record-level events carry the line number and original line text so
    that the reason can be shown next to what the user actually wrote.
    """

    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="When the event occurred (UTC)"
    )
    event_type: DiagnosticEventType
    severity: DiagnosticSeverity = DiagnosticSeverity.INFO
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="Groups events of one check or one prediction session"
    )
    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable reason"
    )
    line_number: Optional[int] = None
    raw_line: Optional[str] = None
    details: dict[str, Any] = Field(default_factory=dict)

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "line_number": self.line_number,
            "raw_line": self.raw_line,
            "details": self.details,
        }

    def to_csv_row(self) -> list[str]:
        """
        Convert to a row for a diagnostics CSV.

        Columns: [event_id, timestamp, event_type, severity, correlation_id,
        description, line_number, raw_line, details_json]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            str(self.line_number) if self.line_number is not None else "",
            self.raw_line or "",
            json.dumps(self.details, default=str) if self.details else "",
        ]


class DiagnosticEventBuilder:
    """
    Helper class to build diagnostic events with common patterns.

    Usage:
        event = DiagnosticEventBuilder.record_rejected(
            reason="Invalid date format: 13/01/2024",
            line_number=4,
            raw_line="13/01/2024,Food,-5",
        )
    """

    @staticmethod
    def record_rejected(
        reason: str,
        line_number: Optional[int],
        raw_line: Optional[str],
        field: str,
        correlation_id: Optional[UUID] = None,
    ) -> DiagnosticEvent:
        return DiagnosticEvent(
            event_type=DiagnosticEventType.RECORD_REJECTED,
            severity=DiagnosticSeverity.WARNING,
            correlation_id=correlation_id,
            description=reason,
            line_number=line_number,
            raw_line=raw_line,
            details={"field": field},
        )

    @staticmethod
    def record_skipped(
        reason: str,
        line_number: Optional[int],
        raw_line: Optional[str],
        field: str,
        correlation_id: Optional[UUID] = None,
    ) -> DiagnosticEvent:
        return DiagnosticEvent(
            event_type=DiagnosticEventType.RECORD_SKIPPED,
            severity=DiagnosticSeverity.WARNING,
            correlation_id=correlation_id,
            description=f"Skipping invalid line: {reason}",
            line_number=line_number,
            raw_line=raw_line,
            details={"field": field},
        )

    @staticmethod
    def year_mismatch(
        expected_year: int,
        found_year: int,
        line_number: Optional[int],
        raw_line: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> DiagnosticEvent:
        return DiagnosticEvent(
            event_type=DiagnosticEventType.YEAR_MISMATCH,
            severity=DiagnosticSeverity.ERROR,
            correlation_id=correlation_id,
            description=f"Year mismatch: found {found_year}, expected {expected_year}",
            line_number=line_number,
            raw_line=raw_line,
            details={"expected_year": expected_year, "found_year": found_year},
        )

    @staticmethod
    def ledger_rejected(
        source_name: str,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> DiagnosticEvent:
        return DiagnosticEvent(
            event_type=DiagnosticEventType.LEDGER_REJECTED,
            severity=DiagnosticSeverity.ERROR,
            correlation_id=correlation_id,
            description=f"Ledger {source_name} rejected: {reason}",
            details={"source": source_name},
        )

    @staticmethod
    def ledger_accepted(
        source_name: str,
        records_checked: int,
        correlation_id: Optional[UUID] = None,
    ) -> DiagnosticEvent:
        return DiagnosticEvent(
            event_type=DiagnosticEventType.LEDGER_ACCEPTED,
            correlation_id=correlation_id,
            description=f"Ledger {source_name} passed validation ({records_checked} records)",
            details={"source": source_name, "records_checked": records_checked},
        )

    @staticmethod
    def session_started(
        source_name: str,
        year: int,
        income: str,
        expenses: str,
        skipped: int,
        correlation_id: UUID,
    ) -> DiagnosticEvent:
        return DiagnosticEvent(
            event_type=DiagnosticEventType.SESSION_STARTED,
            correlation_id=correlation_id,
            description=f"Prediction session started from {source_name} for {year}",
            details={
                "source": source_name,
                "year": year,
                "total_income": income,
                "total_expenses": expenses,
                "skipped_records": skipped,
            },
        )

    @staticmethod
    def priority_changed(
        event_type: DiagnosticEventType,
        description: str,
        category: Optional[str],
        priorities: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> DiagnosticEvent:
        soft_failures = {
            DiagnosticEventType.PRIORITY_SLOTS_FULL,
            DiagnosticEventType.PRIORITY_DUPLICATE,
            DiagnosticEventType.PRIORITY_NOT_FOUND,
        }
        return DiagnosticEvent(
            event_type=event_type,
            severity=(
                DiagnosticSeverity.WARNING
                if event_type in soft_failures
                else DiagnosticSeverity.INFO
            ),
            correlation_id=correlation_id,
            description=description,
            details={"category": category, "priorities": list(priorities)},
        )

    @staticmethod
    def adjustment(
        event_type: DiagnosticEventType,
        description: str,
        category: str,
        requested: Decimal,
        applied: Decimal,
        remainder: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> DiagnosticEvent:
        warnings = {
            DiagnosticEventType.ADJUSTMENT_BLOCKED,
            DiagnosticEventType.REMAINDER_CONFLICT,
        }
        return DiagnosticEvent(
            event_type=event_type,
            severity=(
                DiagnosticSeverity.WARNING
                if event_type in warnings
                else DiagnosticSeverity.INFO
            ),
            correlation_id=correlation_id,
            description=description,
            details={
                "category": category,
                "requested": str(requested),
                "applied": str(applied),
                "remainder": str(remainder),
            },
        )
