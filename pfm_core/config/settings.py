"""
Configuration Management for the PFM engine

Uses pydantic-settings for type-safe configuration.

DESIGN DECISION: The rule set is chosen once per deployment.
The engine never auto-detects whether a ledger uses whole-unit or
two-decimal amounts, or whether ampersands are allowed in categories.
Callers either rely on the cached defaults or pass an explicit
EngineSettings instance to each service.
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from pfm_core.models.ledger import AmountMode, CategoryCharset


class EngineSettings(BaseSettings):
    """
    Validation and simulation settings.

    Loads from PFM_* environment variables and an optional .env file;
    every field can also be passed directly.
    """

    model_config = SettingsConfigDict(
        env_prefix="PFM_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    amount_mode: AmountMode = Field(
        default=AmountMode.INTEGER,
        description="Whole currency units, or fixed-point with up to 2 decimals"
    )
    category_charset: CategoryCharset = Field(
        default=CategoryCharset.LETTERS_UNDERSCORE_AMPERSAND,
        description="Characters allowed in category names"
    )
    ledger_extension: str = Field(
        default="csv",
        min_length=1,
        description="Required (case-insensitive) suffix of ledger files"
    )
    report_filename: str = Field(
        default="Report.csv",
        min_length=1,
        description="Default file name for CSV reports"
    )

    @field_validator('ledger_extension')
    @classmethod
    def normalize_extension(cls, v: str) -> str:
        """Store the extension without a leading dot, lower-cased."""
        return v.lstrip(".").lower()

    @property
    def ledger_suffix(self) -> str:
        """Extension with its leading dot, e.g. '.csv'."""
        return f".{self.ledger_extension}"


@lru_cache()
def get_settings() -> EngineSettings:
    """
    Get engine settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return EngineSettings()
