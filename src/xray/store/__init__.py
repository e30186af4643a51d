"""Event storage: protocol, records and the in-memory backend."""

from xray.store.memory import MemoryEventStore
from xray.store.models import StoredEvent, TraceSummary
from xray.store.protocol import EventStore

__all__ = [
    "EventStore",
    "MemoryEventStore",
    "StoredEvent",
    "TraceSummary",
]
