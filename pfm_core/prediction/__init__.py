"""Prediction package."""

from pfm_core.prediction.engine import (
    PROJECTION_YEARS,
    PredictionEngine,
    weighted_reduction,
)

__all__ = ["PROJECTION_YEARS", "PredictionEngine", "weighted_reduction"]
