"""Funnel and cross-trace analytics over stored decision events."""

from xray.analytics.funnel import (
    FunnelStage,
    FunnelStats,
    build_funnel,
    decision_counts,
    drop_rate_percent,
)
from xray.analytics.queries import (
    EventFilter,
    HighDropTrace,
    MetadataValueCount,
    ReasonStats,
    drop_reasons,
    high_drop_traces,
    metadata_values,
)

__all__ = [
    "EventFilter",
    "FunnelStage",
    "FunnelStats",
    "HighDropTrace",
    "MetadataValueCount",
    "ReasonStats",
    "build_funnel",
    "decision_counts",
    "drop_rate_percent",
    "drop_reasons",
    "high_drop_traces",
    "metadata_values",
]
