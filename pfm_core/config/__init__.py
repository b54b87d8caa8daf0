"""Configuration package."""

from pfm_core.config.settings import (
    EngineSettings,
    get_settings,
)

__all__ = [
    "EngineSettings",
    "get_settings",
]
