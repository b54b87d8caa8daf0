"""
Prediction Models

State and results of a "what-if" budget session.

DESIGN DECISION: PredictionState is a plain value owned by the caller.
The prediction engine keeps nothing between calls; every operation
receives the state it should read or mutate. Two sessions can never
see each other's priorities or pending adjustments.
"""

from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)

from pfm_core.models.ledger import AmountMode


MAX_PRIORITIES = 3


class BudgetStatus(str, Enum):
    """Income compared with expenses."""
    SURPLUS = "surplus"
    DEFICIT = "deficit"
    BALANCED = "balanced"


class SimulationPhase(str, Enum):
    """
    Logical state of a prediction session.

    These are not a strict sequence: a session can go back to NEUTRAL
    by clearing its priorities at any time.
    """
    NEUTRAL = "neutral"          # No priorities set
    PRIORITIZED = "prioritized"  # 1-3 priorities set
    SIMULATING = "simulating"    # A remainder awaits another category


class PendingRemainder(BaseModel):
    """An adjustment the protected category could not fully absorb."""
    model_config = ConfigDict(frozen=True)

    category: str
    requested: Decimal = Field(ge=0)
    applied: Decimal = Field(ge=0)
    remainder: Decimal = Field(gt=0)
    rank: Optional[int] = Field(default=None, ge=1, le=MAX_PRIORITIES)


class PredictionState(BaseModel):
    """
    Session-scoped simulation state.

    Seeded once from a ledger's annual totals, then mutated only by
    explicit engine calls. Discarded when the caller ends the session.
    """
    model_config = ConfigDict(validate_assignment=True)

    session_id: UUID = Field(
        default_factory=uuid4,
        description="Correlation id for this session's diagnostics"
    )
    year: Optional[int] = Field(
        default=None,
        description="Year of the ledger the session was seeded from"
    )
    total_income: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        description="Annual income"
    )
    total_expenses: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        description="Annual expenses, never negative"
    )
    priorities: list[str] = Field(
        default_factory=list,
        max_length=MAX_PRIORITIES,
        description="Protected categories, index 0 is rank 1"
    )
    pending: Optional[PendingRemainder] = Field(
        default=None,
        description="Unresolved remainder of the last adjustment"
    )
    amount_mode: AmountMode = Field(
        default=AmountMode.INTEGER,
        description="Amount rule of the ledger this session came from"
    )

    @field_validator('priorities')
    @classmethod
    def priorities_distinct(cls, v: list[str]) -> list[str]:
        if len(set(v)) != len(v):
            raise ValueError("Priority categories must be distinct")
        return v

    @property
    def phase(self) -> SimulationPhase:
        if self.pending is not None:
            return SimulationPhase.SIMULATING
        if self.priorities:
            return SimulationPhase.PRIORITIZED
        return SimulationPhase.NEUTRAL

    @property
    def priorities_full(self) -> bool:
        return len(self.priorities) >= MAX_PRIORITIES


class CategoryContribution(BaseModel):
    """How much one category's reduction saves, now and over time."""
    model_config = ConfigDict(frozen=True)

    category: str
    applied: Decimal = Field(ge=0)
    two_year: Decimal = Field(ge=0)
    five_year: Decimal = Field(ge=0)


class SavingsProjection(BaseModel):
    """Savings after an adjustment cycle, scaled to two and five years."""
    model_config = ConfigDict(frozen=True)

    annual: Decimal
    two_year: Decimal
    five_year: Decimal
    contributions: list[CategoryContribution] = Field(default_factory=list)

    @property
    def total_reduction(self) -> Decimal:
        return sum((c.applied for c in self.contributions), Decimal("0"))


class AdjustmentResult(BaseModel):
    """
    Outcome of adjust_spending or resolve_remainder.

    Business outcomes (blocked, conflict, pending) are reported here,
    never raised.
    """

    category: str
    requested: Decimal = Field(ge=0)
    applied: Decimal = Field(ge=0)
    remainder: Decimal = Field(ge=0)
    blocked: bool = False
    needs_resolution: bool = False
    conflict: bool = False
    message: str = ""
    projection: Optional[SavingsProjection] = None

    @property
    def resolved(self) -> bool:
        return self.projection is not None
