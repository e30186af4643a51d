"""xray - Decision observability for AI pipelines."""

__version__ = "0.1.0"

from xray.analytics import build_funnel, drop_reasons, high_drop_traces, metadata_values
from xray.client import XRayClient
from xray.config import CollectorConfig, LoggerConfig
from xray.logger import XRayLogger
from xray.models import (
    BaseEvent,
    CustomEvent,
    DecisionEvent,
    Event,
    HTTPEvent,
    LLMEvent,
    parse_event,
)
from xray.transports import HTTPTransport, TerminalTransport
from xray.utils.hashing import hash_object, hash_text

__all__ = [
    "XRayLogger",
    "XRayClient",
    "LoggerConfig",
    "CollectorConfig",
    "BaseEvent",
    "CustomEvent",
    "DecisionEvent",
    "Event",
    "HTTPEvent",
    "LLMEvent",
    "parse_event",
    "build_funnel",
    "drop_reasons",
    "high_drop_traces",
    "metadata_values",
    "HTTPTransport",
    "TerminalTransport",
    "hash_object",
    "hash_text",
]

try:
    from xray.transports import RedisTransport

    __all__ += ["RedisTransport"]
except ImportError:
    pass

try:
    from xray.consumer import BrokerIngestor

    __all__ += ["BrokerIngestor"]
except ImportError:
    pass
