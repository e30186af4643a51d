"""Core event models for xray.

Every event shares one envelope (event_type, trace_id, span_id, timestamp,
duration_ms, service, metadata). The event_type discriminant selects one of four
closed variants: LLM calls, decisions, HTTP requests and custom events. Any
event_type that is not a known kind is a custom event.

Models accept unknown keys so producer-specific fields survive the round trip
through the collector.
"""

from datetime import UTC, datetime
from typing import Any, Literal

from nanoid import generate
from pydantic import BaseModel, ConfigDict, Field, field_validator

from xray.analytics.funnel import drop_rate_percent
from xray.exceptions import REQUIRED_FIELDS

ID_SIZE = 21


def generate_id(size: int = ID_SIZE) -> str:
    """Generate a globally unique identifier for traces and spans."""
    return generate(size=size)


def missing_required_fields(payload: dict[str, Any]) -> list[str]:
    """Return the required envelope fields absent from a wire payload."""
    return [name for name in REQUIRED_FIELDS if payload.get(name) in (None, "")]


class _Open(BaseModel):
    model_config = ConfigDict(extra="allow")


class BaseEvent(_Open):
    """Envelope shared by every event kind."""

    event_type: str
    trace_id: str
    span_id: str = Field(default_factory=generate_id)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    duration_ms: int = Field(default=0, ge=0)
    service: str | None = None
    metadata: dict[str, Any] | None = None

    @field_validator("timestamp")
    @classmethod
    def _ensure_aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

    def to_wire(self) -> dict[str, Any]:
        """Serialize to the JSON shape the collector accepts."""
        return self.model_dump(mode="json", exclude_none=True)


# Decision events


class ReasonCount(_Open):
    count: int = Field(ge=0)
    reason: str


class Decision(_Open):
    """Counts and reasons for one filtering step."""

    input_count: int = Field(ge=0)
    output_count: int = Field(ge=0)
    kept: list[ReasonCount] = Field(default_factory=list)
    dropped: list[ReasonCount] = Field(default_factory=list)
    criteria: dict[str, Any] | None = None

    @property
    def drop_rate_percent(self) -> float:
        return drop_rate_percent(self.input_count, self.output_count)

    def is_consistent(self) -> bool:
        """Check the advisory count invariants.

        output_count <= input_count, kept counts sum to output_count and
        dropped counts sum to input_count - output_count. Never enforced on
        construction.
        """
        if self.output_count > self.input_count:
            return False
        kept_total = sum(item.count for item in self.kept)
        dropped_total = sum(item.count for item in self.dropped)
        return (
            kept_total == self.output_count
            and dropped_total == self.input_count - self.output_count
        )


class DecisionEvent(BaseEvent):
    event_type: Literal["decision"] = "decision"
    decision: Decision


# LLM events


class Reasoning(_Open):
    summary: str
    effort: str | None = None
    strategy: str | None = None
    confidence: float | None = Field(default=None, ge=0.0, le=1.0)
    decision_factors: list[str] | None = None
    alternatives_considered: list[str] | None = None


class ModelInfo(_Open):
    provider: str
    name: str


class LLMInput(_Open):
    input_tokens: int = Field(ge=0)
    system_prompt_hash: str | None = None
    user_prompt_hash: str | None = None
    raw_prompt: str | None = None


class LLMOutput(_Open):
    output_tokens: int = Field(ge=0)
    response_text: str | None = None
    response_hash: str | None = None
    finish_reason: str | None = None


class Variability(_Open):
    nondeterministic: bool
    reason: str | None = None


class LLMMetrics(_Open):
    latency_ms: int = Field(ge=0)
    cost_usd: float | None = None


class LLMEvent(BaseEvent):
    event_type: Literal["llm_call"] = "llm_call"
    reasoning: Reasoning
    model: ModelInfo
    params: dict[str, Any] = Field(default_factory=dict)
    input: LLMInput
    output: LLMOutput
    variability: Variability | None = None
    metrics: LLMMetrics | None = None


# HTTP events


class HTTPRequestInfo(_Open):
    method: str
    url: str
    headers_hash: str | None = None
    body_hash: str | None = None


class HTTPResponseInfo(_Open):
    status: int
    headers_hash: str | None = None
    body_hash: str | None = None


class HTTPErrorInfo(_Open):
    message: str
    code: str | None = None


class HTTPEvent(BaseEvent):
    event_type: Literal["http_request"] = "http_request"
    request: HTTPRequestInfo
    response: HTTPResponseInfo
    error: HTTPErrorInfo | None = None


class CustomEvent(BaseEvent):
    """Any event whose event_type is not one of the known kinds."""

    data: dict[str, Any] = Field(default_factory=dict)


Event = LLMEvent | DecisionEvent | HTTPEvent | CustomEvent


def parse_event(payload: dict[str, Any]) -> Event:
    """Build the event variant selected by payload["event_type"]."""
    match payload.get("event_type"):
        case "decision":
            return DecisionEvent.model_validate(payload)
        case "llm_call":
            return LLMEvent.model_validate(payload)
        case "http_request":
            return HTTPEvent.model_validate(payload)
        case _:
            return CustomEvent.model_validate(payload)
