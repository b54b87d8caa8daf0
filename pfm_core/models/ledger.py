"""
Ledger Data Models

These models define the schemas for everything that comes out of a
ledger file:
1. Individual transactions (one per valid line)
2. Monthly and annual income/expense totals
3. Validation issues and whole-ledger verdicts

DESIGN DECISION: A Transaction carries a real datetime.date.
Month/day/leap-year correctness is therefore structural: a Transaction
with February 29th in a non-leap year cannot exist.
"""

import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
)


MONTH_NAMES = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)


# =============================================================================
# ENUMS - Rule sets chosen per deployment
# =============================================================================

class AmountMode(str, Enum):
    """
    Lexical rule for the amount field.

    INTEGER: optional sign followed by digits ("-50", "+2000").
    DECIMAL: optional sign, digits, up to two fractional digits ("-12.5").
    """
    INTEGER = "integer"
    DECIMAL = "decimal"


class CategoryCharset(str, Enum):
    """Characters a category name may contain."""
    LETTERS_UNDERSCORE = "letters_underscore"
    LETTERS_UNDERSCORE_AMPERSAND = "letters_underscore_ampersand"


# =============================================================================
# CORE LEDGER MODELS
# =============================================================================

class Transaction(BaseModel):
    """
    One valid ledger line.

    Sign convention: amount > 0 is income, amount < 0 is an expense of
    magnitude abs(amount). A zero amount is legal and counts as neither.
    """
    model_config = ConfigDict(frozen=True)

    date: datetime.date = Field(
        ...,
        description="Calendar date of the transaction"
    )
    category: str = Field(
        ...,
        min_length=1,
        description="Category name (letters, underscore, optionally ampersand)"
    )
    amount: Decimal = Field(
        ...,
        description="Signed amount: positive for income, negative for expenses"
    )
    line_number: Optional[int] = Field(
        default=None,
        ge=1,
        description="1-based line number in the source ledger"
    )
    raw_line: Optional[str] = Field(
        default=None,
        description="Original text of the ledger line"
    )

    @property
    def year(self) -> int:
        return self.date.year

    @property
    def month(self) -> int:
        return self.date.month

    @property
    def is_income(self) -> bool:
        return self.amount > 0

    @property
    def is_expense(self) -> bool:
        return self.amount < 0


class PeriodTotals(BaseModel):
    """Income and expense totals for one month or one year."""
    model_config = ConfigDict(frozen=True)

    income: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        description="Sum of positive amounts"
    )
    expense: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        description="Sum of the magnitudes of negative amounts"
    )

    @computed_field
    @property
    def net(self) -> Decimal:
        return self.income - self.expense

    def __add__(self, other: "PeriodTotals") -> "PeriodTotals":
        return PeriodTotals(
            income=self.income + other.income,
            expense=self.expense + other.expense,
        )


class AggregateSummary(BaseModel):
    """
    Twelve monthly buckets plus the annual bucket.

    The annual bucket is always derived from the monthly ones, so the two
    can never disagree.
    """
    model_config = ConfigDict(frozen=True)

    year: Optional[int] = Field(
        default=None,
        description="Year the ledger covers (None for an empty ledger)"
    )
    months: tuple[PeriodTotals, ...] = Field(
        default_factory=lambda: tuple(PeriodTotals() for _ in range(12)),
        min_length=12,
        max_length=12,
        description="Monthly totals, index 0 is January"
    )
    transaction_count: int = Field(
        default=0,
        ge=0,
        description="Number of transactions folded into the summary"
    )

    @computed_field
    @property
    def annual(self) -> PeriodTotals:
        total = PeriodTotals()
        for bucket in self.months:
            total = total + bucket
        return total

    def month(self, number: int) -> PeriodTotals:
        """Totals for a month, 1 = January."""
        if not 1 <= number <= 12:
            raise ValueError(f"Month must be between 1 and 12, got {number}")
        return self.months[number - 1]


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single problem found in a ledger source or one of its lines."""

    line_number: Optional[int] = Field(
        default=None,
        description="1-based line number (None for source-level problems)"
    )
    raw_line: Optional[str] = Field(
        default=None,
        description="Original text of the offending line"
    )
    field: str = Field(
        ...,
        pattern="^(source|line|date|category|amount|year)$",
        description="Which part of the record failed"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g. 'wrong_column_count', 'invalid_format')"
    )
    message: str = Field(
        ...,
        description="Human-readable reason"
    )
    severity: str = Field(
        default="error",
        pattern="^(error|warning)$",
        description="Issue severity"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Issue-specific data (e.g. expected and found year)"
    )


class LedgerCheckResult(BaseModel):
    """
    Verdict of a strict whole-ledger check.

    can_override is True when the source itself is usable but some record
    failed: the caller may ask the user "continue anyway?". Structural
    problems and year mismatches cannot be overridden.
    """

    source_name: str
    expected_year: int
    is_valid: bool
    can_override: bool = False
    records_checked: int = Field(default=0, ge=0)
    issues: list[ValidationIssue] = Field(default_factory=list)

    @field_validator('issues')
    @classmethod
    def issues_sorted_by_line(cls, v: list[ValidationIssue]) -> list[ValidationIssue]:
        """Keep issues in source order for readability."""
        return sorted(v, key=lambda issue: issue.line_number or 0)

    @property
    def has_errors(self) -> bool:
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def first_issue(self) -> Optional[ValidationIssue]:
        return self.issues[0] if self.issues else None
