"""Transports delivering events from the logger to the collector."""

from xray.transports.base import BaseTransport
from xray.transports.http import HTTPTransport
from xray.transports.terminal import TerminalTransport

__all__ = [
    "BaseTransport",
    "HTTPTransport",
    "TerminalTransport",
]

# Optional Redis transport if dependencies available
try:
    from xray.transports.redis import RedisTransport  # noqa: F401

    __all__.append("RedisTransport")
except ImportError:
    pass  # Redis dependencies not installed
