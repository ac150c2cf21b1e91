"""Statistics aggregation."""

from vecdb.stats.aggregator import StatisticsAggregator, StatisticsListener

__all__ = ["StatisticsAggregator", "StatisticsListener"]
