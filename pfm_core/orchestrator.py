"""
Orchestrator for the PFM engine

This module ties the engines together into the flows the (external)
menu layer drives:
1. Upload check (path -> year from file name -> strict check -> verdict)
2. Report (strict check -> aggregate -> text or CSV)
3. Prediction (lenient ingest -> status overview -> simulation calls)

DESIGN DECISION: The orchestrator never prompts and never decides where
a user's files live. It returns verdicts and messages; the caller asks
the user and resolves paths.
"""

from decimal import Decimal
from pathlib import Path
from typing import Optional, Union

from pydantic import BaseModel, Field

from pfm_core.aggregation import aggregate
from pfm_core.audit import DiagnosticsLogger
from pfm_core.config import EngineSettings, get_settings
from pfm_core.models.ledger import AggregateSummary, LedgerCheckResult
from pfm_core.models.prediction import BudgetStatus, PredictionState
from pfm_core.prediction import PredictionEngine
from pfm_core.reports import render_text, write_report
from pfm_core.services.storage import (
    FileReportSink,
    LedgerSource,
    ReportSink,
    as_ledger_source,
)
from pfm_core.validation import LedgerValidator, ledger_year_from_name


class UploadReview(BaseModel):
    """What the upload collaborator needs to decide on a candidate ledger."""

    source_name: str
    year: Optional[int] = None
    check: Optional[LedgerCheckResult] = None
    can_accept: bool = False
    requires_override: bool = False
    message: str


class ReportOutcome(BaseModel):
    """Result of generating a report."""

    success: bool
    error_message: Optional[str] = None
    summary: Optional[AggregateSummary] = None
    text: Optional[str] = None
    csv_lines: list[str] = Field(default_factory=list)
    written_to: Optional[str] = None


class PredictionOverview(BaseModel):
    """First answer of a prediction session: where the budget stands."""

    status: BudgetStatus
    headroom: Decimal
    amount_to_reach_surplus: Decimal
    amount_to_tip_into_deficit: Decimal
    message: str


class LedgerUploadFlow:
    """
    Checks a candidate ledger before it is accepted or overwritten.

    Flow:
    1. Derive the year from the file name (YYYY.csv)
    2. Strict check of the whole ledger
    3. Verdict: accept, accept only with explicit override, or refuse

    Copying the file into the user's storage is the caller's job.
    """

    def __init__(
        self,
        validator: Optional[LedgerValidator] = None,
        diagnostics: Optional[DiagnosticsLogger] = None,
    ):
        self._validator = validator or LedgerValidator(diagnostics=diagnostics)

    def review(
        self,
        source: Union[LedgerSource, str, Path],
        year: Optional[int] = None,
    ) -> UploadReview:
        """
        Review a candidate ledger.

        Args:
            source: Ledger path or source
            year: Expected year; derived from the file name when omitted
        """
        source = as_ledger_source(source)

        if year is None:
            year = ledger_year_from_name(source.name, self._validator.settings.ledger_extension)
            if year is None:
                return UploadReview(
                    source_name=source.name,
                    message=(
                        f"Invalid ledger file name: {Path(source.name).name}. "
                        f"Must be YYYY.{self._validator.settings.ledger_extension}"
                    ),
                )

        check = self._validator.check_ledger(year, source)
        return UploadReview(
            source_name=source.name,
            year=year,
            check=check,
            can_accept=check.is_valid,
            requires_override=not check.is_valid and check.can_override,
            message=self._validator.get_user_friendly_summary(check),
        )


class ReportFlow:
    """
    Produces the yearly income/expense report.

    Only ledgers that pass the strict check are reported on.
    """

    def __init__(
        self,
        validator: Optional[LedgerValidator] = None,
        diagnostics: Optional[DiagnosticsLogger] = None,
    ):
        self._validator = validator or LedgerValidator(diagnostics=diagnostics)

    def generate(
        self,
        source: Union[LedgerSource, str, Path],
        year: int,
        sink: Optional[ReportSink] = None,
    ) -> ReportOutcome:
        """
        Build the report for one ledger year.

        Args:
            source: Ledger path or source
            year: Year the ledger must cover
            sink: Where to write the CSV rendering; None for text only
        """
        source = as_ledger_source(source)
        check = self._validator.check_ledger(year, source)
        if not check.is_valid:
            reason = check.first_issue.message if check.first_issue else "invalid ledger"
            return ReportOutcome(
                success=False,
                error_message=f"Invalid file. Aborting. ({reason})",
            )

        transactions, _ = self._validator.parse_lenient(source.read_lines(), expected_year=year)
        summary = aggregate(transactions, year=year)

        outcome = ReportOutcome(
            success=True,
            summary=summary,
            text=render_text(summary),
        )
        if sink is not None:
            outcome.csv_lines = write_report(summary, sink)
            outcome.written_to = sink.name
        return outcome

    def generate_file(
        self,
        source: Union[LedgerSource, str, Path],
        year: int,
        directory: Union[str, Path] = ".",
    ) -> ReportOutcome:
        """Build the report and write it next to other reports as Report.csv."""
        path = Path(directory) / self._validator.settings.report_filename
        return self.generate(source, year, sink=FileReportSink(path))


class PredictionFlow:
    """
    Starts prediction sessions and summarises where the budget stands.

    Simulation calls (priorities, adjustments, remainder resolution) go
    straight to the engine with the session's state.
    """

    def __init__(
        self,
        engine: Optional[PredictionEngine] = None,
        settings: Optional[EngineSettings] = None,
        diagnostics: Optional[DiagnosticsLogger] = None,
    ):
        self._engine = engine or PredictionEngine(
            settings=settings or get_settings(),
            diagnostics=diagnostics,
        )

    @property
    def engine(self) -> PredictionEngine:
        return self._engine

    def start(
        self,
        source: Union[LedgerSource, str, Path],
        year: int,
    ) -> PredictionState:
        """
        Raises:
            StructuralError: If the ledger cannot be read
            YearMismatchError: If the ledger spans more than one year
        """
        return self._engine.start_session(source, year)

    def overview(self, state: PredictionState) -> PredictionOverview:
        status = self._engine.status(state)
        headroom = self._engine.headroom(state)
        to_surplus = self._engine.amount_to_reach_surplus(state)

        if status == BudgetStatus.SURPLUS:
            message = f"You can spend an additional: ${headroom}"
        elif status == BudgetStatus.DEFICIT:
            message = f"You need to cut expenses by: ${to_surplus}"
        else:
            message = "Your budget is balanced, no prediction needed."

        return PredictionOverview(
            status=status,
            headroom=headroom,
            amount_to_reach_surplus=to_surplus,
            amount_to_tip_into_deficit=self._engine.amount_to_tip_into_deficit(state),
            message=message,
        )


def create_app_components(
    settings: Optional[EngineSettings] = None,
    diagnostics: Optional[DiagnosticsLogger] = None,
) -> tuple[LedgerUploadFlow, ReportFlow, PredictionFlow, DiagnosticsLogger]:
    """
    Factory function to create all flows sharing one rule set and one
    diagnostics trail.

    Returns:
        (upload_flow, report_flow, prediction_flow, diagnostics)
    """
    settings = settings or get_settings()
    diagnostics = diagnostics or DiagnosticsLogger()
    validator = LedgerValidator(settings=settings, diagnostics=diagnostics)

    upload_flow = LedgerUploadFlow(validator=validator)
    report_flow = ReportFlow(validator=validator)
    prediction_flow = PredictionFlow(
        engine=PredictionEngine(
            settings=settings,
            diagnostics=diagnostics,
            validator=validator,
        ),
    )

    return upload_flow, report_flow, prediction_flow, diagnostics
