"""Shared fixtures for the PFM engine tests."""

from pathlib import Path

import pytest

from pfm_core.audit import DiagnosticsLogger
from pfm_core.config import EngineSettings
from pfm_core.models.ledger import AmountMode, CategoryCharset
from pfm_core.prediction import PredictionEngine
from pfm_core.validation import LedgerValidator


@pytest.fixture
def settings() -> EngineSettings:
    """Integer amounts, ampersands allowed."""
    return EngineSettings(
        amount_mode=AmountMode.INTEGER,
        category_charset=CategoryCharset.LETTERS_UNDERSCORE_AMPERSAND,
    )


@pytest.fixture
def decimal_settings() -> EngineSettings:
    return EngineSettings(
        amount_mode=AmountMode.DECIMAL,
        category_charset=CategoryCharset.LETTERS_UNDERSCORE,
    )


@pytest.fixture
def diagnostics() -> DiagnosticsLogger:
    return DiagnosticsLogger()


@pytest.fixture
def validator(settings, diagnostics) -> LedgerValidator:
    return LedgerValidator(settings=settings, diagnostics=diagnostics)


@pytest.fixture
def engine(settings, diagnostics, validator) -> PredictionEngine:
    return PredictionEngine(settings=settings, diagnostics=diagnostics, validator=validator)


@pytest.fixture
def write_ledger(tmp_path):
    """Write ledger lines to tmp_path/<name> and return the path."""
    def _write(name: str, lines: list[str]) -> Path:
        path = tmp_path / name
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return path
    return _write


@pytest.fixture
def scenario_lines() -> list[str]:
    """Two January 2023 records: one expense, one income."""
    return [
        "01/05/2023,Food,-50",
        "01/10/2023,Salary,2000",
    ]
