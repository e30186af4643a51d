"""Funnel aggregation over the decision events of one trace.

A funnel is the timestamp-ordered sequence of decision events of a trace. Each
stage reports its own drop rate; the funnel reports the cumulative drop rate
from the first stage's input to the last stage's output.
"""

import logging
import math
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from xray.exceptions import NoDecisionEventsError
from xray.store.models import StoredEvent

logger = logging.getLogger(__name__)


def drop_rate_fraction(input_count: int, output_count: int) -> float:
    """Fraction of candidates removed, 0 when nothing came in."""
    if input_count <= 0:
        return 0.0
    return 1 - output_count / input_count


def drop_rate_percent(input_count: int, output_count: int) -> float:
    """Drop rate as a percentage rounded to 2 decimals, 0 when input_count is 0."""
    if input_count <= 0:
        return 0.0
    return round(drop_rate_fraction(input_count, output_count) * 100, 2)


def read_count(value: Any) -> int:
    """Read a count from stored JSON; anything but a finite number reads as 0."""
    if isinstance(value, bool) or not isinstance(value, int | float):
        return 0
    if isinstance(value, float) and not math.isfinite(value):
        return 0
    return max(int(value), 0)


def decision_payload(data: dict[str, Any]) -> dict[str, Any]:
    decision = data.get("decision")
    return decision if isinstance(decision, dict) else {}


def decision_counts(data: dict[str, Any]) -> tuple[int, int]:
    """Read (input_count, output_count) from stored event JSON.

    Missing or malformed counts read as 0, and output_count is clamped so that
    0 <= output_count <= input_count always holds.
    """
    decision = decision_payload(data)
    input_count = read_count(decision.get("input_count"))
    output_count = read_count(decision.get("output_count"))
    if output_count > input_count:
        logger.warning(
            f"Decision event {data.get('span_id')} reports output_count {output_count} "
            f"above input_count {input_count}, clamping"
        )
        output_count = input_count
    return input_count, output_count


def reason_entries(decision: dict[str, Any], key: str) -> list[dict[str, Any]]:
    value = decision.get(key)
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


def sort_by_timestamp(events: Iterable[StoredEvent]) -> list[StoredEvent]:
    """Ascending timestamp order, ties kept in ingestion order."""
    return sorted(events, key=lambda e: (e.timestamp, e.sequence))


@dataclass(frozen=True, slots=True)
class FunnelStage:
    span_id: str
    timestamp: datetime
    input_count: int
    output_count: int
    drop_rate_percent: float
    kept: list[dict[str, Any]] = field(default_factory=list)
    dropped: list[dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_event(cls, event: StoredEvent) -> "FunnelStage":
        input_count, output_count = decision_counts(event.data)
        decision = decision_payload(event.data)
        return cls(
            span_id=event.span_id,
            timestamp=event.timestamp,
            input_count=input_count,
            output_count=output_count,
            drop_rate_percent=drop_rate_percent(input_count, output_count),
            kept=reason_entries(decision, "kept"),
            dropped=reason_entries(decision, "dropped"),
        )

    def to_wire(self) -> dict[str, Any]:
        return {
            "span_id": self.span_id,
            "timestamp": self.timestamp.isoformat(),
            "input_count": self.input_count,
            "output_count": self.output_count,
            "drop_rate_percent": self.drop_rate_percent,
            "dropped": list(self.dropped),
            "kept": list(self.kept),
        }


@dataclass(frozen=True, slots=True)
class FunnelStats:
    trace_id: str
    decision_count: int
    cumulative_drop_rate: float
    initial_input: int
    final_output: int
    funnel: list[FunnelStage]

    def to_wire(self) -> dict[str, Any]:
        return {
            "trace_id": self.trace_id,
            "decision_count": self.decision_count,
            "cumulative_drop_rate": self.cumulative_drop_rate,
            "initial_input": self.initial_input,
            "final_output": self.final_output,
            "funnel": [stage.to_wire() for stage in self.funnel],
        }


def build_funnel(trace_id: str, events: Iterable[StoredEvent]) -> FunnelStats:
    """Compute per-stage and cumulative drop rates for one trace.

    Args:
        trace_id: Trace whose funnel to build
        events: Events of the trace in any order; non-decision events are ignored

    Returns:
        FunnelStats with stages in ascending timestamp order

    Raises:
        NoDecisionEventsError: If the trace has no decision events
    """
    decisions = [e for e in events if e.is_decision and e.trace_id == trace_id]
    if not decisions:
        raise NoDecisionEventsError(trace_id)

    stages = [FunnelStage.from_event(event) for event in sort_by_timestamp(decisions)]
    initial_input = stages[0].input_count
    final_output = stages[-1].output_count

    return FunnelStats(
        trace_id=trace_id,
        decision_count=len(stages),
        cumulative_drop_rate=drop_rate_percent(initial_input, final_output),
        initial_input=initial_input,
        final_output=final_output,
        funnel=stages,
    )
