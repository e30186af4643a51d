from datetime import UTC, datetime, timedelta
from typing import Any

from xray.exceptions import TransportError
from xray.models import BaseEvent
from xray.store.models import StoredEvent

BASE_TIME = datetime(2025, 1, 15, 12, 0, tzinfo=UTC)


class CapturingTransport:
    def __init__(self):
        self.events: list[BaseEvent] = []
        self.closed = False

    async def send(self, event: BaseEvent) -> None:
        self.events.append(event)

    async def close(self) -> None:
        self.closed = True

    def clear(self) -> None:
        self.events.clear()


class FailingTransport:
    def __init__(self, message: str = "collector unreachable"):
        self.message = message
        self.attempts = 0

    async def send(self, event: BaseEvent) -> None:
        self.attempts += 1
        raise TransportError(self.message, status_code=503)

    async def close(self) -> None:
        pass


def decision_record(
    trace_id: str,
    input_count: int,
    output_count: int,
    *,
    span_id: str | None = None,
    minutes: int = 0,
    service: str | None = "search",
    dropped: list[dict[str, Any]] | None = None,
    kept: list[dict[str, Any]] | None = None,
    metadata: dict[str, Any] | None = None,
    sequence: int = 0,
) -> StoredEvent:
    """Build a stored decision event without going through a store."""
    span_id = span_id or f"{trace_id}-{minutes}-{sequence}"
    timestamp = BASE_TIME + timedelta(minutes=minutes)
    data: dict[str, Any] = {
        "event_type": "decision",
        "trace_id": trace_id,
        "span_id": span_id,
        "timestamp": timestamp.isoformat(),
        "duration_ms": 5,
        "decision": {
            "input_count": input_count,
            "output_count": output_count,
            "kept": kept if kept is not None else [{"count": output_count, "reason": "ok"}],
            "dropped": dropped if dropped is not None else [],
        },
    }
    if service:
        data["service"] = service
    if metadata is not None:
        data["metadata"] = metadata
    return StoredEvent(
        span_id=span_id,
        trace_id=trace_id,
        event_type="decision",
        timestamp=timestamp,
        data=data,
        service=service,
        duration_ms=5,
        sequence=sequence,
    )


def custom_record(
    trace_id: str,
    event_type: str = "page_view",
    *,
    minutes: int = 0,
    metadata: dict[str, Any] | None = None,
    sequence: int = 0,
) -> StoredEvent:
    span_id = f"{trace_id}-{event_type}-{minutes}-{sequence}"
    timestamp = BASE_TIME + timedelta(minutes=minutes)
    data: dict[str, Any] = {
        "event_type": event_type,
        "trace_id": trace_id,
        "span_id": span_id,
        "timestamp": timestamp.isoformat(),
        "data": {},
    }
    if metadata is not None:
        data["metadata"] = metadata
    return StoredEvent(
        span_id=span_id,
        trace_id=trace_id,
        event_type=event_type,
        timestamp=timestamp,
        data=data,
        sequence=sequence,
    )
