"""Ingestion boundary: turn wire payloads into stored event records.

Only the envelope fields event_type, trace_id and timestamp are required.
Kind-specific payloads are stored as sent, including decisions whose kept and
dropped counts do not add up.
"""

import json
from datetime import UTC, datetime
from typing import Any

from xray.analytics.funnel import read_count
from xray.exceptions import EventValidationError, InvalidBatchError, MissingFieldsError
from xray.models import generate_id, missing_required_fields
from xray.store.models import StoredEvent


def parse_timestamp(value: Any) -> datetime:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError as e:
            raise EventValidationError(f"Invalid timestamp: {value!r}") from e
    else:
        raise EventValidationError(f"Invalid timestamp: {value!r}")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _reject_constant(name: str) -> Any:
    raise EventValidationError(f"Non-finite number {name} is not valid JSON")


def loads(raw: str | bytes) -> Any:
    """Decode a JSON body, rejecting the NaN and Infinity literals.

    Raises:
        EventValidationError: If the body is not strict JSON
    """
    try:
        return json.loads(raw, parse_constant=_reject_constant)
    except json.JSONDecodeError as e:
        raise EventValidationError(f"Request body must be valid JSON: {e.msg}") from None


def prepare_event(payload: Any, index: int | None = None) -> StoredEvent:
    """Validate the envelope and build the record to store.

    A missing span_id is replaced by a freshly generated one, and the stored
    JSON carries the resolved span_id.

    Raises:
        MissingFieldsError: If event_type, trace_id or timestamp is missing
        EventValidationError: If the payload is not an object or the timestamp is unparseable
    """
    if not isinstance(payload, dict):
        raise InvalidBatchError("Event must be a JSON object", index=index)

    missing = missing_required_fields(payload)
    if missing:
        raise MissingFieldsError(missing, index=index)

    span_id = payload.get("span_id") or generate_id()
    data = {**payload, "span_id": str(span_id)}
    service = payload.get("service")

    return StoredEvent(
        span_id=str(span_id),
        trace_id=str(payload["trace_id"]),
        event_type=str(payload["event_type"]),
        timestamp=parse_timestamp(payload["timestamp"]),
        data=data,
        service=str(service) if service else None,
        duration_ms=read_count(payload.get("duration_ms")),
    )


def prepare_batch(body: Any) -> list[StoredEvent]:
    """Prepare every event of a batch body before anything is stored.

    Accepts `{"events": [...]}` or a bare array.
    """
    events = body.get("events", body) if isinstance(body, dict) else body
    if not isinstance(events, list):
        raise InvalidBatchError()
    return [prepare_event(payload, index=i) for i, payload in enumerate(events)]
