"""Configuration objects for the logger and the collector."""

import os
from dataclasses import dataclass
from typing import Literal

OnError = Literal["throw", "log", "silent"]

DEFAULT_ENDPOINT = "http://localhost:3000"
ERROR_POLICIES = ("throw", "log", "silent")


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").lower() in ("1", "true", "yes", "on")


@dataclass
class LoggerConfig:
    """Configuration for an XRayLogger instance.

    Attributes:
        service: Logical producer name attached to every event
        endpoint: Base URL of the collector
        api_key: Sent as a bearer token when set
        debug: Log outgoing event payloads at DEBUG level
        on_error: Transport failure policy ("throw", "log", "silent")
        timeout: HTTP timeout in seconds
    """

    service: str
    endpoint: str = DEFAULT_ENDPOINT
    api_key: str | None = None
    debug: bool = False
    on_error: OnError = "log"
    timeout: float = 10.0

    def __post_init__(self) -> None:
        if self.on_error not in ERROR_POLICIES:
            raise ValueError(
                f"on_error must be one of {', '.join(ERROR_POLICIES)}, got {self.on_error!r}"
            )
        self.endpoint = self.endpoint.rstrip("/")

    @classmethod
    def from_env(cls, **overrides) -> "LoggerConfig":
        """Build a config from XRAY_* environment variables.

        Explicit keyword overrides win over the environment.
        """
        values = {
            "service": os.getenv("XRAY_SERVICE", "unknown"),
            "endpoint": os.getenv("XRAY_ENDPOINT", DEFAULT_ENDPOINT),
            "api_key": os.getenv("XRAY_API_KEY") or None,
            "debug": _env_flag("XRAY_DEBUG"),
            "on_error": os.getenv("XRAY_ON_ERROR", "log"),
        }
        values.update(overrides)
        return cls(**values)


@dataclass
class CollectorConfig:
    """Configuration for the collector API."""

    api_prefix: str = "/v1"
    trace_list_limit: int = 50
    high_drop_threshold: float = 0.9
    high_drop_limit: int = 50
    drop_reasons_limit: int = 20

    @classmethod
    def from_env(cls, **overrides) -> "CollectorConfig":
        values: dict = {}
        if prefix := os.getenv("XRAY_API_PREFIX"):
            values["api_prefix"] = prefix
        if limit := os.getenv("XRAY_TRACE_LIST_LIMIT"):
            values["trace_list_limit"] = int(limit)
        values.update(overrides)
        return cls(**values)
