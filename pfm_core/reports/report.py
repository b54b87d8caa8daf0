"""
Financial Report Rendering

Turns an AggregateSummary into a 13-row table (twelve months plus the
year total) with income, expenses and net per row.

Two renderings are supported:
1. Aligned text for display
2. Comma-separated lines for a report file

Rendering never re-reads or re-validates the ledger: it only formats a
summary that the aggregation engine already produced.
"""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel

from pfm_core.models.ledger import MONTH_NAMES, AggregateSummary
from pfm_core.services.storage import ReportSink


CSV_HEADER = "Month, income, expenses, net"

MIN_COLUMN_WIDTH = 8
LABEL_WIDTH = 9


class ReportRow(BaseModel):
    """One row of the report."""

    label: str
    income: Decimal
    expense: Decimal
    net: Decimal


def report_rows(
    summary: AggregateSummary,
    total_label: Optional[str] = None,
) -> list[ReportRow]:
    """
    Twelve month rows followed by the total row.

    The total row is labelled with the summary's year unless a label is
    given ("Year" when the year is unknown).
    """
    rows = [
        ReportRow(
            label=MONTH_NAMES[i],
            income=bucket.income,
            expense=bucket.expense,
            net=bucket.net,
        )
        for i, bucket in enumerate(summary.months)
    ]
    if total_label is None:
        total_label = str(summary.year) if summary.year is not None else "Year"
    annual = summary.annual
    rows.append(ReportRow(
        label=total_label,
        income=annual.income,
        expense=annual.expense,
        net=annual.net,
    ))
    return rows


def render_text(summary: AggregateSummary) -> str:
    """
    Aligned table for display.

    Column width follows the size of the annual income so the largest
    figure still lines up.
    """
    width = max(MIN_COLUMN_WIDTH, len(f"{summary.annual.income:.2f}") + 1)

    lines = [
        f"{'Month':<{LABEL_WIDTH}} | {'Income':<{width}} | {'Expenses':<{width}} | Net",
        "",
    ]
    for row in report_rows(summary):
        lines.append(
            f"{row.label:<{LABEL_WIDTH}} | {row.income:<{width}.2f} | "
            f"{row.expense:<{width}.2f} | {row.net:.2f}"
        )
    return "\n".join(lines)


def render_csv_lines(summary: AggregateSummary) -> list[str]:
    """Report file content: header, twelve months, then the year total."""
    lines = [CSV_HEADER]
    for row in report_rows(summary, total_label="Year"):
        lines.append(f"{row.label}, {row.income:.2f}, {row.expense:.2f}, {row.net:.2f}")
    return lines


def write_report(summary: AggregateSummary, sink: ReportSink) -> list[str]:
    """
    Write the CSV rendering to a sink.

    Returns the lines written.

    Raises:
        StorageError: If the sink cannot be written
    """
    lines = render_csv_lines(summary)
    sink.write_lines(lines)
    return lines
