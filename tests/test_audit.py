"""
Tests for the diagnostics logger
"""

from pfm_core.audit import DiagnosticsLogger, create_correlation_id
from pfm_core.models.audit import DiagnosticEventBuilder, DiagnosticEventType
from pfm_core.services.storage import DiagnosticsStorage, StorageError


class RecordingStorage(DiagnosticsStorage):
    """Keeps appended events in a list."""

    def __init__(self):
        self.events = []

    def append_event(self, event):
        self.events.append(event)
        return True


class FailingStorage(DiagnosticsStorage):
    """Fails every write."""

    def append_event(self, event):
        raise StorageError("disk full")


def _rejection(correlation_id=None):
    return DiagnosticEventBuilder.record_rejected(
        reason="Invalid dollar amount: abc",
        line_number=2,
        raw_line="01/05/2023,Food,abc",
        field="amount",
        correlation_id=correlation_id,
    )


class TestDiagnosticsLogger:
    """Tests for in-memory trail and persistence."""

    def test_events_are_kept_in_order(self):
        diagnostics = DiagnosticsLogger()
        diagnostics.log(_rejection())
        diagnostics.log(DiagnosticEventBuilder.ledger_accepted("2023.csv", 3))

        assert [e.event_type for e in diagnostics.events] == [
            DiagnosticEventType.RECORD_REJECTED,
            DiagnosticEventType.LEDGER_ACCEPTED,
        ]

    def test_events_property_is_a_copy(self):
        diagnostics = DiagnosticsLogger()
        diagnostics.log(_rejection())
        diagnostics.events.clear()
        assert len(diagnostics.events) == 1

    def test_filter_by_correlation_id(self):
        diagnostics = DiagnosticsLogger()
        first, second = create_correlation_id(), create_correlation_id()
        diagnostics.log(_rejection(first))
        diagnostics.log(_rejection(second))
        diagnostics.log(_rejection(first))

        assert len(diagnostics.events_for(first)) == 2
        assert diagnostics.messages(second) == ["Invalid dollar amount: abc"]

    def test_events_are_persisted(self):
        storage = RecordingStorage()
        diagnostics = DiagnosticsLogger(storage=storage)

        assert diagnostics.log(_rejection()) is True
        assert len(storage.events) == 1

    def test_storage_failure_does_not_raise(self):
        diagnostics = DiagnosticsLogger(storage=FailingStorage())

        assert diagnostics.log(_rejection()) is False
        assert len(diagnostics.events) == 1

    def test_clear(self):
        diagnostics = DiagnosticsLogger()
        diagnostics.log(_rejection())
        diagnostics.clear()
        assert diagnostics.events == []
