"""Validation package."""

from pfm_core.validation.validator import (
    LedgerValidator,
    days_in_month,
    is_header_line,
    is_leap_year,
    iter_records,
    ledger_year_from_name,
    parse_amount,
    parse_date,
    record_year,
    valid_amount,
    valid_category,
    valid_date,
)

__all__ = [
    "LedgerValidator",
    "days_in_month",
    "is_header_line",
    "is_leap_year",
    "iter_records",
    "ledger_year_from_name",
    "parse_amount",
    "parse_date",
    "record_year",
    "valid_amount",
    "valid_category",
    "valid_date",
]
