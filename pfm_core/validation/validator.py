"""
Ledger Validation

DESIGN DECISION: The same record grammar is enforced under two policies.

STRICT (check_ledger / validate_ledger):
- The source must be a real, readable ledger file
- Every record must pass, otherwise the whole ledger is invalid
- Used to gate "this looks right" before a ledger is accepted or
  overwritten; a failed record may still be overridden by the user

LENIENT (parse_lenient / parse_and_aggregate_lenient):
- Malformed records are skipped, one diagnostic per skip
- Used when ingesting a ledger for simulation

Both policies treat a second year inside one ledger as fatal: the
aggregate of a multi-year ledger means nothing.

Record grammar, in order of checking:
    MM/DD/YYYY , category , amount
1. Exactly three comma-separated fields
2. Date: three numeric tokens, month 1-12, leap-year-aware day range
3. Year equals the ledger's year
4. Category: letters and underscore (ampersand in the extended set)
5. Amount: optional sign and digits (two decimals in decimal mode)

IMPORTANT: Validation NEVER silently fixes a record. It reports why.
"""

import calendar
import re
from datetime import MAXYEAR, date
from decimal import Decimal
from pathlib import Path
from typing import Iterable, Iterator, Optional, Union
from uuid import UUID

from pfm_core.aggregation import aggregate
from pfm_core.audit import DiagnosticsLogger, create_correlation_id
from pfm_core.config import EngineSettings, get_settings
from pfm_core.exceptions import RecordError, YearMismatchError
from pfm_core.models.audit import DiagnosticEventBuilder
from pfm_core.models.ledger import (
    AggregateSummary,
    AmountMode,
    CategoryCharset,
    LedgerCheckResult,
    Transaction,
    ValidationIssue,
)
from pfm_core.services.storage import LedgerSource, StorageError, as_ledger_source


_DATE_TOKEN = re.compile(r"[0-9]+")

_AMOUNT_PATTERNS = {
    AmountMode.INTEGER: re.compile(r"[+-]?[0-9]+"),
    AmountMode.DECIMAL: re.compile(r"[+-]?[0-9]+(\.[0-9]{1,2})?"),
}

_CATEGORY_PATTERNS = {
    CategoryCharset.LETTERS_UNDERSCORE: re.compile(r"[A-Za-z_]+"),
    CategoryCharset.LETTERS_UNDERSCORE_AMPERSAND: re.compile(r"[A-Za-z_&]+"),
}


# =============================================================================
# FIELD CHECKS - pure functions
# =============================================================================

def is_leap_year(year: int) -> bool:
    return year % 400 == 0 or (year % 4 == 0 and year % 100 != 0)


def days_in_month(month: int, year: int) -> int:
    """Number of days in a month (1-12) of the given year."""
    if month == 2 and is_leap_year(year):
        return 29
    return calendar.mdays[month]


def parse_date(text: Optional[str]) -> Optional[date]:
    """
    Parse an MM/DD/YYYY date.

    Returns None unless the text has exactly three numeric tokens forming
    a real calendar date with a positive year.
    """
    if text is None:
        return None

    parts = text.split("/")
    if len(parts) != 3:
        return None
    if not all(_DATE_TOKEN.fullmatch(part.strip()) for part in parts):
        return None

    month, day, year = (int(part) for part in parts)

    if not 1 <= month <= 12:
        return None
    # Upper bound is the datetime.date limit, not part of the date grammar
    if year <= 0 or year > MAXYEAR:
        return None
    if not 1 <= day <= days_in_month(month, year):
        return None

    return date(year, month, day)


def valid_date(text: Optional[str]) -> bool:
    return parse_date(text) is not None


def valid_category(
    text: Optional[str],
    charset: Optional[CategoryCharset] = None,
) -> bool:
    """True iff text is non-empty and uses only the allowed characters."""
    if not text:
        return False
    charset = charset or get_settings().category_charset
    return _CATEGORY_PATTERNS[charset].fullmatch(text) is not None


def valid_amount(
    text: Optional[str],
    mode: Optional[AmountMode] = None,
) -> bool:
    if text is None:
        return False
    mode = mode or get_settings().amount_mode
    return _AMOUNT_PATTERNS[mode].fullmatch(text.strip()) is not None


def parse_amount(
    text: Optional[str],
    mode: Optional[AmountMode] = None,
) -> Optional[Decimal]:
    if not valid_amount(text, mode):
        return None
    return Decimal(text.strip())


def is_header_line(line: str) -> bool:
    """A header names its columns: it mentions both 'date' and 'category'."""
    lowered = line.lower()
    return "date" in lowered and "category" in lowered


def record_year(line: str) -> Optional[int]:
    """Year of a record's date, if the record has a readable date at all."""
    fields = line.split(",")
    if len(fields) != 3:
        return None
    parsed = parse_date(fields[0].strip())
    return parsed.year if parsed else None


def ledger_year_from_name(
    path: Union[str, Path],
    extension: Optional[str] = None,
) -> Optional[int]:
    """
    Year encoded in a ledger file name.

    Ledger files are named YYYY.<ext> (extension case-insensitive) with a
    four-digit year that does not start with zero.
    """
    extension = (extension or get_settings().ledger_extension).lstrip(".")
    pattern = re.compile(r"([1-9][0-9]{3})\." + re.escape(extension), re.IGNORECASE)
    match = pattern.fullmatch(Path(path).name)
    return int(match.group(1)) if match else None


def iter_records(lines: Iterable[str]) -> Iterator[tuple[int, str]]:
    """
    Yield (line_number, line) for every record line.

    Blank lines are ignored. The first non-blank line is dropped if it is
    a header.
    """
    seen_first = False
    for line_number, raw in enumerate(lines, start=1):
        line = raw.rstrip("\r\n")
        if not line.strip():
            continue
        if not seen_first:
            seen_first = True
            if is_header_line(line):
                continue
        yield line_number, line


# =============================================================================
# LEDGER VALIDATOR
# =============================================================================

class LedgerValidator:
    """
    Validates ledger records and whole ledgers.

    Holds the configured rule set and the diagnostics sink; otherwise
    stateless, so one instance can serve any number of ledgers.
    """

    def __init__(
        self,
        settings: Optional[EngineSettings] = None,
        diagnostics: Optional[DiagnosticsLogger] = None,
    ):
        """
        Initialize validator.

        Args:
            settings: Rule set to apply. Defaults to get_settings().
            diagnostics: Where rejection reasons go. A private logger is
                         created if none is given.
        """
        self._settings = settings or get_settings()
        self._diagnostics = diagnostics or DiagnosticsLogger()

    @property
    def settings(self) -> EngineSettings:
        return self._settings

    @property
    def diagnostics(self) -> DiagnosticsLogger:
        return self._diagnostics

    def _parse_record(
        self,
        raw_line: str,
        line_number: Optional[int],
        expected_year: Optional[int],
    ) -> Transaction:
        """
        Parse one record.

        Raises:
            RecordError: If the record breaks the grammar
            YearMismatchError: If the date is valid but in the wrong year
        """
        fields = raw_line.split(",")
        if len(fields) != 3:
            raise RecordError(
                "Invalid line format: wrong number of columns. "
                "Expected date, category and amount.",
                field="line",
                line_number=line_number,
                raw_line=raw_line,
                details={"issue_type": "wrong_column_count", "columns": len(fields)},
            )

        date_text, category, amount_text = (f.strip() for f in fields)

        parsed_date = parse_date(date_text)
        if parsed_date is None:
            raise RecordError(
                f"Invalid date format: {date_text}",
                field="date",
                line_number=line_number,
                raw_line=raw_line,
                details={"issue_type": "invalid_date"},
            )

        if expected_year is not None and parsed_date.year != expected_year:
            raise YearMismatchError(
                expected_year,
                parsed_date.year,
                line_number=line_number,
                raw_line=raw_line,
            )

        if not valid_category(category, self._settings.category_charset):
            raise RecordError(
                f"Invalid category: {category}",
                field="category",
                line_number=line_number,
                raw_line=raw_line,
                details={"issue_type": "invalid_category"},
            )

        amount = parse_amount(amount_text, self._settings.amount_mode)
        if amount is None:
            raise RecordError(
                f"Invalid dollar amount: {amount_text}",
                field="amount",
                line_number=line_number,
                raw_line=raw_line,
                details={"issue_type": "invalid_amount"},
            )

        return Transaction(
            date=parsed_date,
            category=category,
            amount=amount,
            line_number=line_number,
            raw_line=raw_line,
        )

    @staticmethod
    def _issue_from_error(error: Union[RecordError, YearMismatchError]) -> ValidationIssue:
        if isinstance(error, YearMismatchError):
            return ValidationIssue(
                line_number=error.line_number,
                raw_line=error.raw_line,
                field="year",
                issue_type="year_mismatch",
                message=error.message,
                details={
                    "expected_year": error.expected_year,
                    "found_year": error.found_year,
                },
            )
        return ValidationIssue(
            line_number=error.line_number,
            raw_line=error.raw_line,
            field=error.field,
            issue_type=error.details.get("issue_type", "invalid_format"),
            message=error.message,
        )

    def _report_rejection(
        self,
        issue: ValidationIssue,
        correlation_id: Optional[UUID],
    ) -> None:
        if issue.field == "year":
            event = DiagnosticEventBuilder.year_mismatch(
                expected_year=issue.details["expected_year"],
                found_year=issue.details["found_year"],
                line_number=issue.line_number,
                raw_line=issue.raw_line,
                correlation_id=correlation_id,
            )
        else:
            event = DiagnosticEventBuilder.record_rejected(
                reason=issue.message,
                line_number=issue.line_number,
                raw_line=issue.raw_line,
                field=issue.field,
                correlation_id=correlation_id,
            )
        self._diagnostics.log(event)

    def check_record(
        self,
        expected_year: int,
        raw_line: Optional[str],
        line_number: Optional[int] = None,
    ) -> Optional[ValidationIssue]:
        """
        Check one record without reporting it.

        Returns:
            The first problem found, or None if the record is valid
        """
        if raw_line is None or not raw_line.strip():
            return ValidationIssue(
                line_number=line_number,
                raw_line=raw_line,
                field="line",
                issue_type="empty_line",
                message="Invalid line format: the line is empty.",
            )
        try:
            self._parse_record(raw_line, line_number, expected_year)
        except (RecordError, YearMismatchError) as e:
            return self._issue_from_error(e)
        return None

    def validate_record(
        self,
        expected_year: int,
        raw_line: Optional[str],
        line_number: Optional[int] = None,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """
        Validate one record against the grammar and the expected year.

        Failures are reported (reason + original line) to the diagnostics
        logger. Never raises.
        """
        issue = self.check_record(expected_year, raw_line, line_number)
        if issue is None:
            return True
        self._report_rejection(issue, correlation_id)
        return False

    def check_ledger(
        self,
        expected_year: int,
        source: Union[LedgerSource, str, Path],
    ) -> LedgerCheckResult:
        """
        Strict whole-ledger check.

        Stops at the first structural problem or the first bad record.
        """
        source = as_ledger_source(source)
        correlation_id = create_correlation_id()

        problem = source.structural_problem()
        lines: list[str] = []
        if problem is None:
            try:
                lines = source.read_lines()
            except StorageError as e:
                problem = e.message

        if problem is not None:
            self._diagnostics.log(DiagnosticEventBuilder.ledger_rejected(
                source_name=source.name,
                reason=problem,
                correlation_id=correlation_id,
            ))
            return LedgerCheckResult(
                source_name=source.name,
                expected_year=expected_year,
                is_valid=False,
                can_override=False,
                issues=[ValidationIssue(
                    field="source",
                    issue_type="structural",
                    message=problem,
                )],
            )

        records_checked = 0
        for line_number, line in iter_records(lines):
            records_checked += 1
            issue = self.check_record(expected_year, line, line_number)
            if issue is None:
                continue

            self._report_rejection(issue, correlation_id)
            self._diagnostics.log(DiagnosticEventBuilder.ledger_rejected(
                source_name=source.name,
                reason=f"line {line_number}: {issue.message}",
                correlation_id=correlation_id,
            ))
            return LedgerCheckResult(
                source_name=source.name,
                expected_year=expected_year,
                is_valid=False,
                can_override=issue.field != "year",
                records_checked=records_checked,
                issues=[issue],
            )

        self._diagnostics.log(DiagnosticEventBuilder.ledger_accepted(
            source_name=source.name,
            records_checked=records_checked,
            correlation_id=correlation_id,
        ))
        return LedgerCheckResult(
            source_name=source.name,
            expected_year=expected_year,
            is_valid=True,
            records_checked=records_checked,
        )

    def validate_ledger(
        self,
        expected_year: int,
        source: Union[LedgerSource, str, Path],
    ) -> bool:
        return self.check_ledger(expected_year, source).is_valid

    def is_all_same_year(
        self,
        year: int,
        source: Union[LedgerSource, str, Path],
    ) -> bool:
        """
        True iff every record of a usable source has a valid date in `year`.

        Only dates are looked at; categories and amounts are not checked.
        """
        source = as_ledger_source(source)
        if not source.is_available():
            return False
        try:
            lines = source.read_lines()
        except StorageError:
            return False

        for _, line in iter_records(lines):
            if record_year(line) != year:
                return False
        return True

    def parse_lenient(
        self,
        lines: Iterable[str],
        expected_year: Optional[int] = None,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[list[Transaction], list[ValidationIssue]]:
        """
        Best-effort parse: skip bad records, keep the rest.

        The ledger's year is `expected_year`, or, when not given, the year
        of the first record with a readable date.

        Raises:
            YearMismatchError: If any record's date falls in another year
        """
        transactions: list[Transaction] = []
        issues: list[ValidationIssue] = []
        ledger_year = expected_year

        for line_number, line in iter_records(lines):
            if ledger_year is None:
                ledger_year = record_year(line)
            try:
                transactions.append(self._parse_record(line, line_number, ledger_year))
            except YearMismatchError as e:
                self._diagnostics.log(DiagnosticEventBuilder.year_mismatch(
                    expected_year=e.expected_year,
                    found_year=e.found_year,
                    line_number=e.line_number,
                    raw_line=e.raw_line,
                    correlation_id=correlation_id,
                ))
                raise
            except RecordError as e:
                issue = self._issue_from_error(e)
                issues.append(issue)
                self._diagnostics.log(DiagnosticEventBuilder.record_skipped(
                    reason=issue.message,
                    line_number=issue.line_number,
                    raw_line=issue.raw_line,
                    field=issue.field,
                    correlation_id=correlation_id,
                ))

        return transactions, issues

    def parse_and_aggregate_lenient(
        self,
        lines: Iterable[str],
        expected_year: Optional[int] = None,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[AggregateSummary, list[ValidationIssue]]:
        """
        Lenient parse followed by aggregation.

        Raises:
            YearMismatchError: If the ledger spans more than one year
        """
        transactions, issues = self.parse_lenient(lines, expected_year, correlation_id)
        year = expected_year
        if year is None and transactions:
            year = transactions[0].year
        return aggregate(transactions, year=year), issues

    def get_user_friendly_summary(
        self,
        result: LedgerCheckResult,
    ) -> str:
        """
        Generate a short summary of a strict check for display.

        This is what the upload collaborator shows before asking whether
        to accept or override.
        """
        if result.is_valid:
            return (
                f"All {result.records_checked} records of {result.source_name} "
                f"look right for {result.expected_year}."
            )

        lines = [f"{result.source_name} is not a valid ledger for {result.expected_year}:"]
        for issue in result.issues:
            where = f"line {issue.line_number}: " if issue.line_number else ""
            lines.append(f"   - {where}{issue.message}")
            if issue.raw_line:
                lines.append(f"     {issue.raw_line}")

        lines.append("")
        if result.can_override:
            lines.append("Invalid records will be skipped if you continue anyway.")
        else:
            lines.append("Please fix the problem above before continuing.")

        return "\n".join(lines)
