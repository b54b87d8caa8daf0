"""Reports package."""

from pfm_core.reports.report import (
    CSV_HEADER,
    ReportRow,
    render_csv_lines,
    render_text,
    report_rows,
    write_report,
)

__all__ = [
    "CSV_HEADER",
    "ReportRow",
    "render_csv_lines",
    "render_text",
    "report_rows",
    "write_report",
]
