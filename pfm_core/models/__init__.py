"""
Data Models Package

This package contains all Pydantic models used by the PFM engine.
All data flowing between the validation, aggregation and prediction
engines conforms to these schemas.
"""

from pfm_core.models.ledger import (
    MONTH_NAMES,
    AggregateSummary,
    AmountMode,
    CategoryCharset,
    LedgerCheckResult,
    PeriodTotals,
    Transaction,
    ValidationIssue,
)
from pfm_core.models.prediction import (
    MAX_PRIORITIES,
    AdjustmentResult,
    BudgetStatus,
    CategoryContribution,
    PendingRemainder,
    PredictionState,
    SavingsProjection,
    SimulationPhase,
)
from pfm_core.models.audit import (
    DiagnosticEvent,
    DiagnosticEventBuilder,
    DiagnosticEventType,
    DiagnosticSeverity,
)

__all__ = [
    # Ledger models
    "MONTH_NAMES",
    "AggregateSummary",
    "AmountMode",
    "CategoryCharset",
    "LedgerCheckResult",
    "PeriodTotals",
    "Transaction",
    "ValidationIssue",
    # Prediction models
    "MAX_PRIORITIES",
    "AdjustmentResult",
    "BudgetStatus",
    "CategoryContribution",
    "PendingRemainder",
    "PredictionState",
    "SavingsProjection",
    "SimulationPhase",
    # Diagnostic models
    "DiagnosticEvent",
    "DiagnosticEventBuilder",
    "DiagnosticEventType",
    "DiagnosticSeverity",
]
