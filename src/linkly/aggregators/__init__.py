"""Click aggregation."""

from linkly.aggregators.click_aggregator import (
    ClickAggregator,
    ClickSource,
    RandomClickSource,
    summarize_events,
)

__all__ = [
    "ClickAggregator",
    "ClickSource",
    "RandomClickSource",
    "summarize_events",
]
