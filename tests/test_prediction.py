"""
Tests for the prediction and priority simulation engine
"""

from decimal import Decimal

import pytest

from pfm_core.exceptions import SimulationProtocolError, StructuralError, YearMismatchError
from pfm_core.models.audit import DiagnosticEventType
from pfm_core.models.ledger import AmountMode
from pfm_core.models.prediction import BudgetStatus, PredictionState, SimulationPhase
from pfm_core.prediction import PredictionEngine, weighted_reduction
from pfm_core.services.storage import InMemoryLedgerSource


def _state(income: str, expenses: str, **kwargs) -> PredictionState:
    return PredictionState(
        year=2023,
        total_income=Decimal(income),
        total_expenses=Decimal(expenses),
        **kwargs,
    )


class TestWeightedReduction:
    """Tests for rank weighting."""

    @pytest.mark.parametrize("amount", [0, 1, 7, 100, 12345])
    def test_rank_one_never_reduces(self, amount):
        assert weighted_reduction(1, amount) == 0

    def test_rank_two_halves(self):
        assert weighted_reduction(2, 100) == 50
        assert weighted_reduction(2, 7) == 3

    def test_rank_three_three_quarters(self):
        assert weighted_reduction(3, 100) == 75
        assert weighted_reduction(3, 10) == 6

    def test_unprotected_takes_everything(self):
        assert weighted_reduction(None, 100) == 100


class TestBudgetStatus:
    """Tests for status, tip, surplus and headroom queries."""

    @pytest.mark.parametrize("income,expenses,status", [
        ("2000", "50", BudgetStatus.SURPLUS),
        ("50", "2000", BudgetStatus.DEFICIT),
        ("100", "100", BudgetStatus.BALANCED),
        ("0", "0", BudgetStatus.BALANCED),
    ])
    def test_status_is_total(self, engine, income, expenses, status):
        assert engine.status(_state(income, expenses)) == status

    def test_surplus_queries(self, engine):
        state = _state("2000", "50")

        assert engine.headroom(state) == Decimal("1950")
        assert engine.amount_to_tip_into_deficit(state) == Decimal("1951")
        assert engine.amount_to_reach_surplus(state) == 0

    def test_tip_amount_flips_status(self, engine):
        state = _state("2000", "50")
        state.total_expenses += engine.amount_to_tip_into_deficit(state)
        assert engine.status(state) == BudgetStatus.DEFICIT

    def test_deficit_queries(self, engine):
        state = _state("100", "300")

        assert engine.headroom(state) == 0
        assert engine.amount_to_tip_into_deficit(state) == 0
        assert engine.amount_to_reach_surplus(state) == Decimal("201")

    def test_reach_surplus_amount_flips_status(self, engine):
        state = _state("100", "300")
        state.total_expenses -= engine.amount_to_reach_surplus(state)
        assert engine.status(state) == BudgetStatus.SURPLUS

    def test_balanced_queries(self, engine):
        state = _state("100", "100")
        assert engine.headroom(state) == 0
        assert engine.amount_to_tip_into_deficit(state) == 0
        assert engine.amount_to_reach_surplus(state) == 0

    def test_decimal_mode_uses_cents(self, engine):
        state = _state("100.00", "40.50", amount_mode=AmountMode.DECIMAL)
        assert engine.amount_to_tip_into_deficit(state) == Decimal("59.51")

    def test_headroom_ignores_category(self, engine):
        state = _state("2000", "50")
        assert engine.headroom(state, "Food") == engine.headroom(state, "Rent")


class TestPriorities:
    """Tests for setting and removing priority categories."""

    def test_priorities_fill_in_order(self, engine):
        state = _state("100", "50")
        for category in ("Rent", "Food", "Fun"):
            assert engine.set_priority(state, category) is True

        assert state.priorities == ["Rent", "Food", "Fun"]
        assert engine.priority_rank(state, "Fun") == 3
        assert state.phase == SimulationPhase.PRIORITIZED

    def test_fourth_priority_is_refused(self, engine, diagnostics):
        state = _state("100", "50", priorities=["A", "B", "C"])

        assert engine.set_priority(state, "D") is False
        assert state.priorities == ["A", "B", "C"]

        event = diagnostics.events_of_type(DiagnosticEventType.PRIORITY_SLOTS_FULL)[0]
        assert event.description == "Already set 3 priority categories."
        assert event.correlation_id == state.session_id

    def test_duplicate_priority_is_a_no_op(self, engine, diagnostics):
        state = _state("100", "50", priorities=["Rent"])

        assert engine.set_priority(state, "Rent") is False
        assert state.priorities == ["Rent"]
        assert diagnostics.messages()[-1] == "'Rent' is already priority 1."

    def test_remove_priority_shifts_ranks(self, engine):
        state = _state("100", "50", priorities=["Rent", "Food", "Fun"])

        assert engine.remove_priority(state, "Rent") is True
        assert state.priorities == ["Food", "Fun"]
        assert engine.priority_rank(state, "Food") == 1

    def test_remove_unknown_priority(self, engine, diagnostics):
        state = _state("100", "50", priorities=["Rent"])

        assert engine.remove_priority(state, "Food") is False
        assert state.priorities == ["Rent"]
        assert len(diagnostics.events_of_type(DiagnosticEventType.PRIORITY_NOT_FOUND)) == 1

    def test_clear_priorities(self, engine):
        state = _state("100", "50", priorities=["Rent", "Food"])
        engine.clear_priorities(state)

        assert state.priorities == []
        assert state.phase == SimulationPhase.NEUTRAL


class TestAdjustSpending:
    """Tests for single-step adjustments."""

    def test_unprotected_category(self, engine):
        state = _state("2000", "1000")
        result = engine.adjust_spending(state, "Food", 100)

        assert result.applied == 100
        assert result.remainder == 0
        assert result.resolved is True
        assert state.total_expenses == Decimal("900")
        assert result.projection.annual == Decimal("1100")
        assert result.projection.two_year == Decimal("2200")
        assert result.projection.five_year == Decimal("5500")
        assert result.message == "Reduced 'Food' spending by 100."

    def test_expenses_never_go_negative(self, engine):
        state = _state("2000", "30")
        engine.adjust_spending(state, "Food", 100)

        assert state.total_expenses == 0

    def test_rank_one_is_blocked(self, engine, diagnostics):
        state = _state("2000", "1000", priorities=["Rent"])
        result = engine.adjust_spending(state, "Rent", 100)

        assert result.blocked is True
        assert result.applied == 0
        assert result.remainder == 100
        assert result.needs_resolution is True
        assert state.total_expenses == Decimal("1000")
        assert state.phase == SimulationPhase.SIMULATING
        assert len(diagnostics.events_of_type(DiagnosticEventType.ADJUSTMENT_BLOCKED)) == 1

    def test_rank_two_applies_half(self, engine):
        state = _state("2000", "1000", priorities=["Rent", "Food"])
        result = engine.adjust_spending(state, "Food", 100)

        assert (result.applied, result.remainder) == (50, 50)
        assert state.total_expenses == Decimal("950")
        assert state.pending.remainder == 50

    def test_rank_three_applies_three_quarters(self, engine):
        state = _state("2000", "1000", priorities=["Rent", "Food", "Fun"])
        result = engine.adjust_spending(state, "Fun", 10)

        assert (result.applied, result.remainder) == (6, 4)
        assert state.total_expenses == Decimal("994")

    def test_zero_reduction_completes_immediately(self, engine):
        state = _state("2000", "1000", priorities=["Rent"])
        result = engine.adjust_spending(state, "Rent", 0)

        assert result.resolved is True
        assert state.pending is None

    def test_negative_amount_is_rejected(self, engine):
        with pytest.raises(ValueError):
            engine.adjust_spending(_state("2000", "1000"), "Food", -5)

    def test_adjust_while_pending_is_rejected(self, engine):
        state = _state("2000", "1000", priorities=["Rent"])
        engine.adjust_spending(state, "Rent", 100)

        with pytest.raises(SimulationProtocolError):
            engine.adjust_spending(state, "Food", 10)


class TestResolveRemainder:
    """Tests for the second phase of a weighted adjustment."""

    def test_full_cycle(self, engine):
        """Food at rank 2 absorbs half, Dining takes the rest."""
        state = _state("2000", "1000", priorities=["Rent", "Food"])
        engine.adjust_spending(state, "Food", 100)
        result = engine.resolve_remainder(state, "Dining")

        assert state.pending is None
        assert state.total_expenses == Decimal("900")
        assert result.applied == 50
        assert result.projection.annual == Decimal("1100")
        assert result.projection.two_year == Decimal("2200")
        assert result.projection.five_year == Decimal("5500")

        contributions = [
            (c.category, c.applied, c.two_year, c.five_year)
            for c in result.projection.contributions
        ]
        assert contributions == [
            ("Food", 50, 100, 250),
            ("Dining", 50, 100, 250),
        ]
        assert result.projection.total_reduction == 100

    def test_blocked_category_contributes_nothing(self, engine):
        state = _state("2000", "1000", priorities=["Rent"])
        engine.adjust_spending(state, "Rent", 100)
        result = engine.resolve_remainder(state, "Food", 100)

        assert state.total_expenses == Decimal("900")
        assert [(c.category, c.applied) for c in result.projection.contributions] == [
            ("Rent", 0),
            ("Food", 100),
        ]

    def test_same_category_is_a_conflict(self, engine, diagnostics):
        state = _state("2000", "1000", priorities=["Rent"])
        engine.adjust_spending(state, "Rent", 100)
        result = engine.resolve_remainder(state, "Rent")

        assert result.conflict is True
        assert result.resolved is False
        assert state.pending is not None
        assert state.total_expenses == Decimal("1000")
        assert len(diagnostics.events_of_type(DiagnosticEventType.REMAINDER_CONFLICT)) == 1

    def test_resolution_target_is_not_weighted(self, engine):
        state = _state("2000", "1000", priorities=["Rent", "Food"])
        engine.adjust_spending(state, "Rent", 100)
        result = engine.resolve_remainder(state, "Food")

        assert result.applied == 100
        assert state.total_expenses == Decimal("900")

    def test_nothing_pending(self, engine):
        with pytest.raises(SimulationProtocolError):
            engine.resolve_remainder(_state("2000", "1000"), "Food")

    def test_amount_must_match_remainder(self, engine):
        state = _state("2000", "1000", priorities=["Rent"])
        engine.adjust_spending(state, "Rent", 100)

        with pytest.raises(ValueError):
            engine.resolve_remainder(state, "Food", 40)

    def test_cancel_pending(self, engine):
        state = _state("2000", "1000", priorities=["Rent", "Food"])
        engine.adjust_spending(state, "Food", 100)
        pending = engine.cancel_pending(state)

        assert pending.remainder == 50
        assert state.pending is None
        assert state.total_expenses == Decimal("950")
        assert engine.cancel_pending(state) is None

    def test_sessions_are_isolated(self, engine):
        first = _state("2000", "1000", priorities=["Rent"])
        second = _state("2000", "1000")

        engine.adjust_spending(first, "Rent", 100)
        result = engine.adjust_spending(second, "Rent", 100)

        assert result.applied == 100
        assert second.pending is None
        assert first.pending is not None


class TestSessions:
    """Tests for starting sessions from ledgers."""

    def test_start_from_scenario(self, engine, write_ledger, scenario_lines):
        path = write_ledger("2023.csv", scenario_lines)
        state = engine.start_session(path, 2023)

        assert state.year == 2023
        assert state.total_income == Decimal("2000")
        assert state.total_expenses == Decimal("50")
        assert engine.status(state) == BudgetStatus.SURPLUS
        assert engine.headroom(state) == Decimal("1950")

    def test_bad_records_are_skipped(self, engine, diagnostics):
        source = InMemoryLedgerSource(["01/05/2023,Food,-50", "01/06/2023,Food,oops"])
        state = engine.start_session(source, 2023)

        assert state.total_expenses == Decimal("50")
        skipped = [
            e for e in diagnostics.events_for(state.session_id)
            if e.event_type == DiagnosticEventType.RECORD_SKIPPED
        ]
        assert len(skipped) == 1

    def test_missing_ledger(self, engine, tmp_path):
        with pytest.raises(StructuralError) as exc_info:
            engine.start_session(tmp_path / "2023.csv", 2023)
        assert "Cannot find file" in str(exc_info.value)

    def test_non_utf8_ledger(self, engine, tmp_path):
        path = tmp_path / "2023.csv"
        path.write_bytes(b"01/05/2023,Caf\xe9,-50\n")

        with pytest.raises(StructuralError) as exc_info:
            engine.start_session(path, 2023)
        assert "not valid UTF-8" in str(exc_info.value)

    def test_mixed_years(self, engine):
        source = InMemoryLedgerSource(["01/05/2023,Food,-50", "01/05/2024,Food,-50"])
        with pytest.raises(YearMismatchError):
            engine.start_session(source, 2023)

    def test_state_from_summary_uses_amount_mode(self, decimal_settings, diagnostics, validator):
        engine = PredictionEngine(settings=decimal_settings, diagnostics=diagnostics)
        summary, _ = validator.parse_and_aggregate_lenient(["01/05/2023,Food,-50"])
        state = engine.state_from_summary(summary)

        assert state.amount_mode == AmountMode.DECIMAL
        assert state.total_expenses == Decimal("50")


class TestExpenseFloor:
    """Tests that simulated expenses never drop below zero."""

    def test_resolve_floors_at_zero(self, engine):
        state = _state("2000", "1000", priorities=["Rent"])
        engine.adjust_spending(state, "Rent", 5000)
        result = engine.resolve_remainder(state, "Food")

        assert state.total_expenses == 0
        assert result.applied == 5000
        assert result.projection.annual == Decimal("2000")


class TestDecimalMode:
    """Tests for simulations on ledgers with cents."""

    def _decimal_state(self, income: str, expenses: str, **kwargs) -> PredictionState:
        return _state(income, expenses, amount_mode=AmountMode.DECIMAL, **kwargs)

    def test_cut_to_reach_surplus(self, engine):
        state = self._decimal_state("100.00", "150.25")
        cut = engine.amount_to_reach_surplus(state)
        result = engine.adjust_spending(state, "Food", cut)

        assert cut == Decimal("50.26")
        assert result.applied == Decimal("50.26")
        assert state.total_expenses == Decimal("99.99")
        assert engine.status(state) == BudgetStatus.SURPLUS
        assert result.projection.annual == Decimal("0.01")
        contribution = result.projection.contributions[0]
        assert contribution.two_year == Decimal("100.52")
        assert contribution.five_year == Decimal("251.30")
        assert result.message == "Reduced 'Food' spending by 50.26."

    def test_rank_two_splits_in_cents(self, engine):
        state = self._decimal_state("500.00", "400.00", priorities=["Rent", "Food"])
        result = engine.adjust_spending(state, "Food", Decimal("10.05"))

        assert result.applied == Decimal("5.02")
        assert result.remainder == Decimal("5.03")
        assert state.total_expenses == Decimal("394.98")

        resolved = engine.resolve_remainder(state, "Dining", Decimal("5.03"))
        assert state.total_expenses == Decimal("389.95")
        assert resolved.projection.total_reduction == Decimal("10.05")

    def test_rank_three_in_cents(self):
        assert weighted_reduction(3, Decimal("0.10"), Decimal("0.01")) == Decimal("0.06")

    def test_sub_cent_amount_is_rejected_untouched(self, engine):
        state = self._decimal_state("100.00", "150.25", priorities=["Rent"])

        with pytest.raises(ValueError):
            engine.adjust_spending(state, "Rent", Decimal("10.005"))

        assert state.total_expenses == Decimal("150.25")
        assert state.pending is None

    def test_fractional_amount_in_integer_mode(self, engine):
        state = _state("2000", "1000")

        with pytest.raises(ValueError):
            engine.adjust_spending(state, "Food", Decimal("12.5"))

        assert state.total_expenses == Decimal("1000")
