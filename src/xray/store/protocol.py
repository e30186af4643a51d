"""Event store protocol.

The store is an append-only JSON store keyed by span_id. It never updates or
deletes events; all funnel and analytics semantics live outside it.
"""

from typing import Protocol, runtime_checkable

from xray.store.models import StoredEvent, TraceSummary


@runtime_checkable
class EventStore(Protocol):
    """Protocol for event storage backends.

    Implementations: MemoryEventStore (testing, local collector).
    """

    async def append(self, record: StoredEvent) -> StoredEvent:
        """Persist one event. Raises DuplicateEventError if the span_id exists."""
        ...

    async def append_batch(self, records: list[StoredEvent]) -> list[StoredEvent]:
        """Persist several events atomically. One failing record aborts the batch."""
        ...

    async def get(self, span_id: str) -> StoredEvent | None:
        """Return the event with this span_id, or None."""
        ...

    async def by_trace(self, trace_id: str) -> list[StoredEvent]:
        """Return every event of a trace in ingestion order."""
        ...

    async def scan(self, event_type: str | None = None) -> list[StoredEvent]:
        """Return all events, optionally restricted to one event_type, in ingestion order."""
        ...

    async def trace_summaries(self, limit: int = 50) -> list[TraceSummary]:
        """Return one summary per trace, most recently started first."""
        ...
