"""Stored event records and derived trace summaries."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass(frozen=True, slots=True)
class StoredEvent:
    """An ingested event as the store keeps it.

    `data` is the full event JSON, including the resolved span_id. `sequence`
    is the ingestion order assigned by the store and breaks timestamp ties.
    """

    span_id: str
    trace_id: str
    event_type: str
    timestamp: datetime
    data: dict[str, Any]
    service: str | None = None
    duration_ms: int = 0
    sequence: int = 0

    @property
    def metadata(self) -> dict[str, Any] | None:
        value = self.data.get("metadata")
        return value if isinstance(value, dict) else None

    @property
    def is_decision(self) -> bool:
        return self.event_type == "decision"


@dataclass(frozen=True, slots=True)
class TraceSummary:
    """One row of the trace listing, synthesized from the events of a trace."""

    trace_id: str
    service: str
    start_time: datetime
    end_time: datetime
    event_count: int
    name: str = "Event-based trace"
    status: str = "completed"
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_wire(self) -> dict[str, Any]:
        return {
            "id": self.trace_id,
            "service": self.service,
            "name": self.name,
            "status": self.status,
            "startTime": int(self.start_time.timestamp() * 1000),
            "endTime": int(self.end_time.timestamp() * 1000),
            "metadata": dict(self.metadata),
            "steps": [],
            "eventCount": self.event_count,
        }
