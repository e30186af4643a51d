"""Producer-side logging API.

XRayLogger shapes events, assigns identifiers and hands each event to a
transport. Transport failures are handled by the instance's error policy:

- "throw": the error propagates to the caller
- "log": the error is logged as a warning and swallowed (default)
- "silent": the error is dropped

Example:
    xray = XRayLogger(LoggerConfig(service="search-api"))
    trace_id = xray.create_trace()
    await xray.log_decision(
        trace_id=trace_id,
        decision={"input_count": 100, "output_count": 15, "dropped": [{"count": 85, "reason": "price_too_high"}]},
    )
"""

import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from xray.config import LoggerConfig
from xray.models import (
    BaseEvent,
    CustomEvent,
    DecisionEvent,
    HTTPEvent,
    LLMEvent,
    generate_id,
    parse_event,
)
from xray.transports.base import BaseTransport
from xray.transports.http import HTTPTransport

logger = logging.getLogger(__name__)

T = TypeVar("T")


class XRayLogger:
    def __init__(self, config: LoggerConfig, transport: BaseTransport | None = None):
        self.config = config
        self.transport = transport or HTTPTransport.from_config(config)

    async def log(self, event: BaseEvent | dict[str, Any]) -> None:
        """Send any well-formed event.

        Dicts are parsed into the variant named by their event_type. Invalid
        events raise pydantic's ValidationError regardless of the error policy.
        """
        if isinstance(event, dict):
            event = parse_event(event)
        try:
            await self.transport.send(event)
        except Exception as e:
            self._handle_error(e)

    async def log_llm(self, **fields: Any) -> None:
        """Log an LLM call; `reasoning.summary` is required."""
        await self.log(LLMEvent.model_validate(self._with_defaults(fields, "llm_call")))

    async def log_decision(self, **fields: Any) -> None:
        """Log a filtering or selection step."""
        await self.log(DecisionEvent.model_validate(self._with_defaults(fields, "decision")))

    async def log_http(self, **fields: Any) -> None:
        await self.log(HTTPEvent.model_validate(self._with_defaults(fields, "http_request")))

    async def log_custom(self, event_type: str, data: dict[str, Any]) -> None:
        """Log a user-defined event with `data` as its payload.

        trace_id and duration_ms are taken from `data` when present.
        """
        event = CustomEvent(
            event_type=event_type,
            trace_id=data.get("trace_id") or self.create_trace(),
            duration_ms=data.get("duration_ms") or 0,
            service=self.config.service,
            data=data,
        )
        await self.log(event)

    def create_trace(self) -> str:
        """Return a fresh trace id. Purely local, no network call."""
        return generate_id()

    async def time(
        self,
        trace_id: str,
        fn: Callable[[], Awaitable[T]],
        event_builder: Callable[[int, T | None], BaseEvent],
    ) -> T:
        """Run `fn`, then log the event built from its duration and result.

        On failure the event is built with result None, `{"error": message}` is
        merged into its metadata, it is logged, and the original error is
        re-raised.
        """
        start = time.perf_counter()
        try:
            result = await fn()
        except Exception as exc:
            duration_ms = int((time.perf_counter() - start) * 1000)
            try:
                error_event = event_builder(duration_ms, None)
                error_event.metadata = {**(error_event.metadata or {}), "error": str(exc)}
                await self.log(error_event)
            except Exception as log_error:
                logger.warning(f"Failed to log error event for trace {trace_id}: {log_error}")
            raise

        duration_ms = int((time.perf_counter() - start) * 1000)
        await self.log(event_builder(duration_ms, result))
        return result

    async def close(self) -> None:
        await self.transport.close()

    async def __aenter__(self) -> "XRayLogger":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def _with_defaults(self, fields: dict[str, Any], event_type: str) -> dict[str, Any]:
        payload = {**fields, "event_type": event_type}
        payload.setdefault("service", self.config.service)
        return payload

    def _handle_error(self, error: Exception) -> None:
        if self.config.on_error == "throw":
            raise error
        elif self.config.on_error == "log":
            logger.warning(f"[XRayLogger] Failed to send event: {error}")
        # "silent" - do nothing
