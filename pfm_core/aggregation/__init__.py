"""Aggregation package."""

from pfm_core.aggregation.aggregator import aggregate, aggregate_by_category

__all__ = ["aggregate", "aggregate_by_category"]
