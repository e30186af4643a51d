"""In-memory event store.

Dict-based storage implementing the full EventStore protocol. All data is
lost when the process exits.
"""

import logging
from dataclasses import replace

from xray.exceptions import DuplicateEventError
from xray.store.models import StoredEvent, TraceSummary

logger = logging.getLogger(__name__)


class MemoryEventStore:
    """Append-only event store for tests and single-process collectors.

    Storage layout: span_id -> record, ingestion-ordered span list, and
    per-trace span lists.
    """

    def __init__(self) -> None:
        self._events: dict[str, StoredEvent] = {}
        self._order: list[str] = []
        self._traces: dict[str, list[str]] = {}
        self._sequence = 0

    def __len__(self) -> int:
        return len(self._order)

    async def append(self, record: StoredEvent) -> StoredEvent:
        if record.span_id in self._events:
            raise DuplicateEventError(record.span_id)
        return self._commit(record)

    async def append_batch(self, records: list[StoredEvent]) -> list[StoredEvent]:
        seen: set[str] = set()
        for record in records:
            if record.span_id in self._events or record.span_id in seen:
                logger.warning(f"Batch of {len(records)} events rejected, duplicate span_id {record.span_id}")
                raise DuplicateEventError(record.span_id)
            seen.add(record.span_id)
        return [self._commit(record) for record in records]

    def _commit(self, record: StoredEvent) -> StoredEvent:
        self._sequence += 1
        stored = replace(record, sequence=self._sequence)
        self._events[stored.span_id] = stored
        self._order.append(stored.span_id)
        self._traces.setdefault(stored.trace_id, []).append(stored.span_id)
        return stored

    async def get(self, span_id: str) -> StoredEvent | None:
        return self._events.get(span_id)

    async def by_trace(self, trace_id: str) -> list[StoredEvent]:
        return [self._events[span_id] for span_id in self._traces.get(trace_id, [])]

    async def scan(self, event_type: str | None = None) -> list[StoredEvent]:
        records = (self._events[span_id] for span_id in self._order)
        if event_type is None:
            return list(records)
        return [record for record in records if record.event_type == event_type]

    async def trace_summaries(self, limit: int = 50) -> list[TraceSummary]:
        summaries = []
        for trace_id, span_ids in self._traces.items():
            records = [self._events[span_id] for span_id in span_ids]
            services = [r.service for r in records if r.service]
            timestamps = [r.timestamp for r in records]
            summaries.append(
                TraceSummary(
                    trace_id=trace_id,
                    service=max(services) if services else "unknown",
                    start_time=min(timestamps),
                    end_time=max(timestamps),
                    event_count=len(records),
                )
            )
        summaries.sort(key=lambda s: s.start_time, reverse=True)
        return summaries[:limit]
