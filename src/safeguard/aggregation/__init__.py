"""Aggregation of audit outcomes."""

from .outcome_aggregator import OutcomeAggregator, aggregate

__all__ = ["OutcomeAggregator", "aggregate"]
