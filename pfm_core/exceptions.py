"""Custom exceptions for the PFM engine.

Only two kinds of failure stop a calling workflow: a ledger source that
is structurally unusable, and a ledger whose records span more than one
year. Everything else (a single malformed record, a full priority list,
a blocked adjustment) is reported through results and diagnostics.

Example:
    try:
        state = engine.start_session(path, expected_year=2024)
    except YearMismatchError as e:
        print(f"Ledger mixes years: {e}")
    except StructuralError as e:
        print(f"Cannot use ledger: {e}")
"""

from typing import Any, Optional


class PFMError(Exception):
    """Base exception for all PFM engine errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional context.
        recoverable: Whether the caller can reasonably retry or override.
    """

    def __init__(
        self,
        message: str,
        *,
        details: Optional[dict[str, Any]] = None,
        recoverable: bool = False,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.recoverable = recoverable

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"details={self.details!r}, "
            f"recoverable={self.recoverable!r})"
        )


class StructuralError(PFMError):
    """Ledger source is missing, unreadable, not a file, or has the wrong extension.

    Attributes:
        source: Name or path of the ledger source.
        problem: Short description of the structural problem.
    """

    def __init__(
        self,
        message: str,
        *,
        source: Optional[str] = None,
        problem: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, details=details, recoverable=False)
        self.source = source
        self.problem = problem

        if source:
            self.details["source"] = source
        if problem:
            self.details["problem"] = problem


class RecordError(PFMError):
    """A single ledger line failed the date, category, amount or shape rules.

    Recoverable by definition: strict mode turns it into "ledger invalid",
    lenient mode skips the line.
    """

    def __init__(
        self,
        message: str,
        *,
        field: str,
        line_number: Optional[int] = None,
        raw_line: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, details=details, recoverable=True)
        self.field = field
        self.line_number = line_number
        self.raw_line = raw_line

        self.details["field"] = field
        if line_number is not None:
            self.details["line_number"] = line_number
        if raw_line is not None:
            self.details["raw_line"] = raw_line


class YearMismatchError(PFMError):
    """A record's year differs from the ledger's expected year.

    Always fatal to ingestion: an aggregate over several years has no
    sound interpretation.
    """

    def __init__(
        self,
        expected_year: int,
        found_year: int,
        *,
        line_number: Optional[int] = None,
        raw_line: Optional[str] = None,
    ) -> None:
        message = f"Year mismatch: found {found_year}, expected {expected_year}"
        if line_number is not None:
            message += f" (line {line_number})"
        super().__init__(message, recoverable=False)
        self.expected_year = expected_year
        self.found_year = found_year
        self.line_number = line_number
        self.raw_line = raw_line

        self.details.update({
            "expected_year": expected_year,
            "found_year": found_year,
        })
        if line_number is not None:
            self.details["line_number"] = line_number
        if raw_line is not None:
            self.details["raw_line"] = raw_line


class SimulationProtocolError(PFMError):
    """The adjust / resolve-remainder sequence was used out of order."""

    def __init__(self, message: str, *, details: Optional[dict[str, Any]] = None) -> None:
        super().__init__(message, details=details, recoverable=True)


__all__ = [
    "PFMError",
    "StructuralError",
    "RecordError",
    "YearMismatchError",
    "SimulationProtocolError",
]
