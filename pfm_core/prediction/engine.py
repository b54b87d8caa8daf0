"""
Prediction & Priority Simulation Engine

Answers "where does my budget stand?" and "what if I spent less on X?"
for one ledger year.

DESIGN DECISION: The engine is stateless. Each session's numbers,
priorities and pending adjustment live in a PredictionState owned by
the caller and passed into every call.

PRIORITY WEIGHTING:
Up to three categories can be protected from simulated reductions.
    rank 1  - never reduced; the whole amount becomes a remainder
    rank 2  - half is applied (integer division)
    rank 3  - (amount // 4) * 3 is applied
    other   - the whole amount is applied
Divisions count whole units of the session's amount mode: dollars in
integer mode, cents in decimal mode.
A remainder must be reassigned to a DIFFERENT category through
resolve_remainder() before the cycle's savings projection is produced.
This two-phase protocol replaces an interactive prompt: the engine never
blocks waiting for input.

Business outcomes (blocked adjustments, full priority slots, same-category
resolutions) are reported in results and diagnostics, never raised.
"""

from decimal import ROUND_DOWN, Decimal
from pathlib import Path
from typing import Optional, Union
from uuid import UUID, uuid4

from pfm_core.audit import DiagnosticsLogger
from pfm_core.config import EngineSettings, get_settings
from pfm_core.exceptions import SimulationProtocolError, StructuralError
from pfm_core.models.audit import DiagnosticEventBuilder, DiagnosticEventType
from pfm_core.models.ledger import AggregateSummary, AmountMode
from pfm_core.models.prediction import (
    MAX_PRIORITIES,
    AdjustmentResult,
    BudgetStatus,
    CategoryContribution,
    PendingRemainder,
    PredictionState,
    SavingsProjection,
)
from pfm_core.services.storage import LedgerSource, StorageError, as_ledger_source
from pfm_core.validation import LedgerValidator


PROJECTION_YEARS = (2, 5)


def weighted_reduction(
    rank: Optional[int],
    amount: Union[int, Decimal],
    unit: Decimal = Decimal("1"),
) -> Decimal:
    """
    Portion of a requested reduction a category absorbs, given its rank.

    Weighting counts whole units (dollars, or cents in decimal mode), so
    the applied part and the remainder are always representable.

    Args:
        rank: Priority rank (1-3), or None for an unprotected category
        amount: Requested reduction, non-negative, a whole number of units
        unit: Smallest representable amount
    """
    units = int(Decimal(amount) / unit)
    if rank == 1:
        units = 0
    elif rank == 2:
        units = units // 2
    elif rank == 3:
        units = (units // 4) * 3
    return units * unit


class PredictionEngine:
    """
    Budget status queries and priority-weighted spending simulation.

    One engine can serve many sessions; it keeps no per-session data.
    """

    def __init__(
        self,
        settings: Optional[EngineSettings] = None,
        diagnostics: Optional[DiagnosticsLogger] = None,
        validator: Optional[LedgerValidator] = None,
    ):
        self._settings = settings or get_settings()
        self._diagnostics = diagnostics or DiagnosticsLogger()
        self._validator = validator or LedgerValidator(self._settings, self._diagnostics)

    @property
    def diagnostics(self) -> DiagnosticsLogger:
        return self._diagnostics

    # =========================================================================
    # SESSION SETUP
    # =========================================================================

    def start_session(
        self,
        source: Union[LedgerSource, str, Path],
        expected_year: int,
    ) -> PredictionState:
        """
        Create a session from one ledger.

        The ledger is re-validated leniently: bad records are skipped with
        a diagnostic each, the rest is aggregated.

        Raises:
            StructuralError: If the source is missing, unreadable or not a ledger
            YearMismatchError: If a record falls outside expected_year
        """
        source = as_ledger_source(source)
        session_id = uuid4()

        problem = source.structural_problem()
        if problem is None:
            try:
                lines = source.read_lines()
            except StorageError as e:
                problem = e.message

        if problem is not None:
            self._diagnostics.log(DiagnosticEventBuilder.ledger_rejected(
                source_name=source.name,
                reason=problem,
                correlation_id=session_id,
            ))
            raise StructuralError(
                f"Cannot start prediction from {source.name}: {problem}",
                source=source.name,
                problem=problem,
            )

        summary, issues = self._validator.parse_and_aggregate_lenient(
            lines,
            expected_year=expected_year,
            correlation_id=session_id,
        )
        state = self.state_from_summary(summary, session_id=session_id)

        self._diagnostics.log(DiagnosticEventBuilder.session_started(
            source_name=source.name,
            year=expected_year,
            income=str(state.total_income),
            expenses=str(state.total_expenses),
            skipped=len(issues),
            correlation_id=session_id,
        ))
        return state

    def state_from_summary(
        self,
        summary: AggregateSummary,
        session_id: Optional[UUID] = None,
    ) -> PredictionState:
        """Seed a fresh session from a summary's annual totals."""
        return PredictionState(
            session_id=session_id or uuid4(),
            year=summary.year,
            total_income=summary.annual.income,
            total_expenses=summary.annual.expense,
            amount_mode=self._settings.amount_mode,
        )

    # =========================================================================
    # STATUS QUERIES
    # =========================================================================

    @staticmethod
    def _unit(state: PredictionState) -> Decimal:
        """Smallest representable amount in the session's amount mode."""
        if state.amount_mode == AmountMode.DECIMAL:
            return Decimal("0.01")
        return Decimal("1")

    def status(self, state: PredictionState) -> BudgetStatus:
        if state.total_income > state.total_expenses:
            return BudgetStatus.SURPLUS
        if state.total_income < state.total_expenses:
            return BudgetStatus.DEFICIT
        return BudgetStatus.BALANCED

    def amount_to_tip_into_deficit(self, state: PredictionState) -> Decimal:
        """Smallest extra spending that turns a surplus into a deficit."""
        if self.status(state) != BudgetStatus.SURPLUS:
            return Decimal("0")
        return (state.total_income - state.total_expenses) + self._unit(state)

    def amount_to_reach_surplus(self, state: PredictionState) -> Decimal:
        """Smallest spending cut that turns a deficit into a surplus."""
        if self.status(state) != BudgetStatus.DEFICIT:
            return Decimal("0")
        return (state.total_expenses - state.total_income) + self._unit(state)

    def headroom(
        self,
        state: PredictionState,
        category: Optional[str] = None,
    ) -> Decimal:
        """
        How much more can be spent without going into deficit.

        `category` is accepted for interface compatibility and ignored:
        headroom is the same whatever the money is spent on.
        """
        if self.status(state) == BudgetStatus.DEFICIT:
            return Decimal("0")
        return state.total_income - state.total_expenses

    # =========================================================================
    # PRIORITIES
    # =========================================================================

    @staticmethod
    def priority_rank(state: PredictionState, category: str) -> Optional[int]:
        """1-based rank of a protected category, None if unprotected."""
        if category in state.priorities:
            return state.priorities.index(category) + 1
        return None

    def _log_priority(
        self,
        state: PredictionState,
        event_type: DiagnosticEventType,
        description: str,
        category: Optional[str],
    ) -> None:
        self._diagnostics.log(DiagnosticEventBuilder.priority_changed(
            event_type=event_type,
            description=description,
            category=category,
            priorities=state.priorities,
            correlation_id=state.session_id,
        ))

    def set_priority(self, state: PredictionState, category: str) -> bool:
        """
        Protect a category at the next free rank.

        Returns False (with a diagnostic) when all slots are taken or the
        category is already protected.
        """
        if category in state.priorities:
            self._log_priority(
                state,
                DiagnosticEventType.PRIORITY_DUPLICATE,
                f"'{category}' is already priority {self.priority_rank(state, category)}.",
                category,
            )
            return False

        if state.priorities_full:
            self._log_priority(
                state,
                DiagnosticEventType.PRIORITY_SLOTS_FULL,
                f"Already set {MAX_PRIORITIES} priority categories.",
                category,
            )
            return False

        state.priorities = [*state.priorities, category]
        self._log_priority(
            state,
            DiagnosticEventType.PRIORITY_SET,
            f"'{category}' set as priority {len(state.priorities)}.",
            category,
        )
        return True

    def remove_priority(self, state: PredictionState, category: str) -> bool:
        """Unprotect a category; lower ranks move up by one."""
        if category not in state.priorities:
            self._log_priority(
                state,
                DiagnosticEventType.PRIORITY_NOT_FOUND,
                f"'{category}' is not a priority category.",
                category,
            )
            return False

        state.priorities = [p for p in state.priorities if p != category]
        self._log_priority(
            state,
            DiagnosticEventType.PRIORITY_REMOVED,
            f"'{category}' is no longer a priority.",
            category,
        )
        return True

    def clear_priorities(self, state: PredictionState) -> None:
        state.priorities = []
        self._log_priority(
            state,
            DiagnosticEventType.PRIORITIES_CLEARED,
            "All priority categories cleared.",
            None,
        )

    # =========================================================================
    # SIMULATION
    # =========================================================================

    def _checked_amount(
        self,
        state: PredictionState,
        amount: Union[int, Decimal],
    ) -> Decimal:
        """
        Reduction amount as a Decimal in the session's unit.

        Raises:
            ValueError: If the amount is negative, not a number, or finer
                        than the session's amount mode allows
        """
        value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
        if not value.is_finite():
            raise ValueError(f"Reduction amount must be a number, got {amount}")
        if value < 0:
            raise ValueError(f"Reduction amount must not be negative, got {amount}")

        unit = self._unit(state)
        if value != value.quantize(unit, rounding=ROUND_DOWN):
            raise ValueError(
                f"Reduction amount {amount} cannot be represented in "
                f"{state.amount_mode.value} mode"
            )
        return value.quantize(unit)

    @staticmethod
    def _reduce_expenses(state: PredictionState, amount: Decimal) -> None:
        state.total_expenses = max(state.total_expenses - amount, Decimal("0"))

    def _log_adjustment(
        self,
        state: PredictionState,
        event_type: DiagnosticEventType,
        result: AdjustmentResult,
    ) -> None:
        self._diagnostics.log(DiagnosticEventBuilder.adjustment(
            event_type=event_type,
            description=result.message,
            category=result.category,
            requested=result.requested,
            applied=result.applied,
            remainder=result.remainder,
            correlation_id=state.session_id,
        ))

    def project_savings(
        self,
        state: PredictionState,
        contributions: Optional[list[tuple[str, Decimal]]] = None,
    ) -> SavingsProjection:
        """
        Savings at the session's current totals.

        Args:
            contributions: (category, applied) pairs touched this cycle
        """
        annual = state.total_income - state.total_expenses
        two_years, five_years = PROJECTION_YEARS
        return SavingsProjection(
            annual=annual,
            two_year=annual * two_years,
            five_year=annual * five_years,
            contributions=[
                CategoryContribution(
                    category=category,
                    applied=applied,
                    two_year=applied * two_years,
                    five_year=applied * five_years,
                )
                for category, applied in (contributions or [])
            ],
        )

    def adjust_spending(
        self,
        state: PredictionState,
        category: str,
        amount: Union[int, Decimal],
    ) -> AdjustmentResult:
        """
        Simulate reducing spending on a category by `amount`.

        Priority weighting decides how much is applied. A positive
        remainder leaves the session waiting for resolve_remainder().
        The state is untouched when the call raises.

        Raises:
            ValueError: If amount is negative or finer than the amount mode
            SimulationProtocolError: If a remainder is still pending
        """
        amount = self._checked_amount(state, amount)
        if state.pending is not None:
            raise SimulationProtocolError(
                f"Resolve the pending remainder of {state.pending.remainder} "
                f"from '{state.pending.category}' first",
                details={"pending_category": state.pending.category},
            )

        rank = self.priority_rank(state, category)
        applied = weighted_reduction(rank, amount, self._unit(state))
        remainder = amount - applied

        if remainder == 0:
            self._reduce_expenses(state, applied)
            result = AdjustmentResult(
                category=category,
                requested=amount,
                applied=applied,
                remainder=Decimal("0"),
                blocked=rank == 1,
                message=f"Reduced '{category}' spending by {applied}.",
                projection=self.project_savings(state, [(category, applied)]),
            )
            self._log_adjustment(state, DiagnosticEventType.ADJUSTMENT_APPLIED, result)
            return result

        pending = PendingRemainder(
            category=category,
            requested=amount,
            applied=applied,
            remainder=remainder,
            rank=rank,
        )
        self._reduce_expenses(state, applied)
        state.pending = pending

        if rank == 1:
            message = (
                f"'{category}' is your top priority and cannot be reduced. "
                f"Choose another category for the remaining {remainder}."
            )
            event_type = DiagnosticEventType.ADJUSTMENT_BLOCKED
        else:
            message = (
                f"'{category}' is priority {rank}: reduced by {applied}. "
                f"Choose another category for the remaining {remainder}."
            )
            event_type = DiagnosticEventType.REMAINDER_PENDING

        result = AdjustmentResult(
            category=category,
            requested=amount,
            applied=applied,
            remainder=remainder,
            blocked=rank == 1,
            needs_resolution=True,
            message=message,
        )
        self._log_adjustment(state, event_type, result)
        return result

    def resolve_remainder(
        self,
        state: PredictionState,
        category: str,
        amount: Optional[Union[int, Decimal]] = None,
    ) -> AdjustmentResult:
        """
        Apply a pending remainder to another category, without weighting.

        Naming the category the remainder came from is rejected softly:
        the result has conflict=True and the remainder stays pending.

        Raises:
            SimulationProtocolError: If nothing is pending
            ValueError: If amount differs from the pending remainder
        """
        pending = state.pending
        if pending is None:
            raise SimulationProtocolError("No remainder is waiting to be resolved")
        if amount is not None and self._checked_amount(state, amount) != pending.remainder:
            raise ValueError(
                f"Resolution amount {amount} does not match the pending remainder "
                f"{pending.remainder}"
            )

        if category == pending.category:
            result = AdjustmentResult(
                category=category,
                requested=pending.remainder,
                applied=Decimal("0"),
                remainder=pending.remainder,
                needs_resolution=True,
                conflict=True,
                message=(
                    f"The remaining {pending.remainder} cannot go back to "
                    f"'{category}'. Choose a different category."
                ),
            )
            self._log_adjustment(state, DiagnosticEventType.REMAINDER_CONFLICT, result)
            return result

        self._reduce_expenses(state, pending.remainder)
        state.pending = None

        result = AdjustmentResult(
            category=category,
            requested=pending.remainder,
            applied=pending.remainder,
            remainder=Decimal("0"),
            message=(
                f"Reduced '{category}' spending by {pending.remainder} "
                f"to cover what '{pending.category}' could not."
            ),
            projection=self.project_savings(state, [
                (pending.category, pending.applied),
                (category, pending.remainder),
            ]),
        )
        self._log_adjustment(state, DiagnosticEventType.REMAINDER_RESOLVED, result)
        return result

    def cancel_pending(self, state: PredictionState) -> Optional[PendingRemainder]:
        """
        Abandon an unresolved remainder.

        The part already applied to the protected category stays applied.
        Returns the abandoned remainder, or None if nothing was pending.
        """
        pending = state.pending
        if pending is None:
            return None
        state.pending = None
        self._diagnostics.log(DiagnosticEventBuilder.adjustment(
            event_type=DiagnosticEventType.REMAINDER_CANCELLED,
            description=f"Remaining {pending.remainder} from '{pending.category}' was not reassigned.",
            category=pending.category,
            requested=pending.requested,
            applied=pending.applied,
            remainder=pending.remainder,
            correlation_id=state.session_id,
        ))
        return pending
