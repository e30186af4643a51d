"""Cross-trace analytics over stored decision events.

Three independent queries, each a pure function over a collection of stored
events: high-drop trace search, drop-reason aggregation and metadata value
enumeration. Filtering is exact equality on service, trace_id and metadata
values; a filter on an unknown metadata key matches nothing.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from xray.analytics.funnel import (
    decision_counts,
    decision_payload,
    drop_rate_fraction,
    drop_rate_percent,
    read_count,
    reason_entries,
)
from xray.exceptions import InvalidQueryError
from xray.metadata import MetadataFilter, has_metadata_key, metadata_text
from xray.store.models import StoredEvent


@dataclass(frozen=True)
class EventFilter:
    """Equality filters shared by the analytics queries."""

    service: str | None = None
    trace_id: str | None = None
    metadata: list[MetadataFilter] = field(default_factory=list)

    def matches(self, event: StoredEvent) -> bool:
        if self.service is not None and event.service != self.service:
            return False
        if self.trace_id is not None and event.trace_id != self.trace_id:
            return False
        return all(f.matches(event.metadata) for f in self.metadata)


def _decisions(events: Iterable[StoredEvent], event_filter: EventFilter | None) -> list[StoredEvent]:
    event_filter = event_filter or EventFilter()
    return [e for e in events if e.is_decision and event_filter.matches(e)]


# High-drop traces


@dataclass(frozen=True, slots=True)
class HighDropTrace:
    trace_id: str
    service: str | None
    timestamp: datetime
    input_count: int
    output_count: int
    drop_rate_percent: float
    metadata: dict[str, Any] | None

    def to_wire(self) -> dict[str, Any]:
        return {
            "trace_id": self.trace_id,
            "service": self.service,
            "timestamp": self.timestamp.isoformat(),
            "input_count": self.input_count,
            "output_count": self.output_count,
            "drop_rate_percent": self.drop_rate_percent,
            "metadata": self.metadata,
        }


def latest_decision_per_trace(decisions: Iterable[StoredEvent]) -> list[StoredEvent]:
    """Pick the most recent decision event of each trace.

    Most recent means the latest timestamp; equal timestamps resolve to the
    event ingested last. Traces keep the order in which they were first seen.
    """
    latest: dict[str, StoredEvent] = {}
    for event in decisions:
        current = latest.get(event.trace_id)
        if current is None or (event.timestamp, event.sequence) >= (current.timestamp, current.sequence):
            latest[event.trace_id] = event
    return list(latest.values())


def high_drop_traces(
    events: Iterable[StoredEvent],
    threshold: float = 0.9,
    limit: int = 50,
    event_filter: EventFilter | None = None,
) -> list[HighDropTrace]:
    """Find traces whose most recent decision dropped at least `threshold` of its input.

    Args:
        events: Stored events to search
        threshold: Minimum drop fraction, in [0, 1]
        limit: Maximum number of traces to return
        event_filter: Optional service/metadata filter

    Returns:
        Matching traces sorted by drop rate, highest first. Traces whose
        representative event has input_count 0 are never included.

    Raises:
        InvalidQueryError: If threshold or limit is out of range
    """
    if not 0 <= threshold <= 1:
        raise InvalidQueryError(f"threshold must be between 0 and 1, got {threshold}")
    if limit < 1:
        raise InvalidQueryError(f"limit must be positive, got {limit}")

    scored = []
    for event in latest_decision_per_trace(_decisions(events, event_filter)):
        input_count, output_count = decision_counts(event.data)
        if input_count == 0:
            continue
        fraction = drop_rate_fraction(input_count, output_count)
        if fraction < threshold:
            continue
        scored.append(
            (
                fraction,
                HighDropTrace(
                    trace_id=event.trace_id,
                    service=event.service,
                    timestamp=event.timestamp,
                    input_count=input_count,
                    output_count=output_count,
                    drop_rate_percent=drop_rate_percent(input_count, output_count),
                    metadata=event.metadata,
                ),
            )
        )

    scored.sort(key=lambda pair: pair[0], reverse=True)
    return [trace for _, trace in scored[:limit]]


# Drop reasons


@dataclass(frozen=True, slots=True)
class ReasonStats:
    reason: str | None
    total_count: int
    affected_traces: int
    avg_percentage: float | None

    def to_wire(self) -> dict[str, Any]:
        return {
            "reason": self.reason,
            "total_count": self.total_count,
            "affected_traces": self.affected_traces,
            "avg_percentage": self.avg_percentage,
        }


@dataclass
class _ReasonTally:
    total_count: int = 0
    traces: set[str] = field(default_factory=set)
    percentages: list[float] = field(default_factory=list)

    def summarize(self, reason: str | None) -> ReasonStats:
        avg = None
        if self.percentages:
            avg = round(sum(self.percentages) / len(self.percentages), 2)
        return ReasonStats(
            reason=reason,
            total_count=self.total_count,
            affected_traces=len(self.traces),
            avg_percentage=avg,
        )


def drop_reasons(
    events: Iterable[StoredEvent],
    event_filter: EventFilter | None = None,
    limit: int | None = None,
) -> list[ReasonStats]:
    """Aggregate `dropped` entries across decision events by reason.

    Each dropped entry contributes its count to total_count, its trace to
    affected_traces and `count / input_count * 100` to avg_percentage. Entries
    of events with input_count 0 contribute nothing to the average; a reason
    with no contributing entry reports avg_percentage None.

    Returns:
        Reasons sorted by total_count, highest first; ties keep first-seen order
    """
    if limit is not None and limit < 1:
        raise InvalidQueryError(f"limit must be positive, got {limit}")

    tallies: dict[str | None, _ReasonTally] = {}
    for event in _decisions(events, event_filter):
        input_count, _ = decision_counts(event.data)
        for entry in reason_entries(decision_payload(event.data), "dropped"):
            reason = metadata_text(entry.get("reason"))
            count = read_count(entry.get("count"))
            tally = tallies.setdefault(reason, _ReasonTally())
            tally.total_count += count
            tally.traces.add(event.trace_id)
            if input_count > 0:
                tally.percentages.append(count / input_count * 100)

    stats = [tally.summarize(reason) for reason, tally in tallies.items()]
    stats.sort(key=lambda s: s.total_count, reverse=True)
    return stats[:limit] if limit is not None else stats


# Metadata values


@dataclass(frozen=True, slots=True)
class MetadataValueCount:
    value: str | None
    count: int

    def to_wire(self) -> dict[str, Any]:
        return {"value": self.value, "count": self.count}


def metadata_values(
    events: Iterable[StoredEvent],
    field_name: str,
    event_type: str | None = None,
) -> list[MetadataValueCount]:
    """Count the distinct values observed at `metadata.<field_name>`.

    Events without the key are skipped entirely. A key holding JSON null is
    counted under the value None.
    """
    if not field_name:
        raise InvalidQueryError("field query parameter is required")

    counts: dict[str | None, int] = {}
    for event in events:
        if event_type is not None and event.event_type != event_type:
            continue
        metadata = event.metadata
        if not has_metadata_key(metadata, field_name):
            continue
        value = metadata_text(metadata[field_name])
        counts[value] = counts.get(value, 0) + 1

    values = [MetadataValueCount(value=value, count=count) for value, count in counts.items()]
    values.sort(key=lambda v: v.count, reverse=True)
    return values
