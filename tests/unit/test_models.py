from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from xray.models import (
    CustomEvent,
    Decision,
    DecisionEvent,
    HTTPEvent,
    LLMEvent,
    generate_id,
    missing_required_fields,
    parse_event,
)


class TestEnvelope:
    def test_defaults(self):
        event = CustomEvent(event_type="page_view", trace_id="t1")

        assert event.span_id
        assert event.duration_ms == 0
        assert event.service is None
        assert event.metadata is None
        assert event.timestamp.tzinfo == UTC

    def test_span_ids_are_unique(self):
        a = CustomEvent(event_type="x", trace_id="t1")
        b = CustomEvent(event_type="x", trace_id="t1")

        assert a.span_id != b.span_id

    def test_generate_id(self):
        ids = {generate_id() for _ in range(1000)}

        assert len(ids) == 1000
        assert all(len(i) == 21 for i in ids)

    def test_naive_timestamp_becomes_utc(self):
        event = CustomEvent(event_type="x", trace_id="t1", timestamp=datetime(2025, 1, 1, 8, 30))

        assert event.timestamp.tzinfo == UTC
        assert event.timestamp.hour == 8

    def test_negative_duration_rejected(self):
        with pytest.raises(ValidationError):
            CustomEvent(event_type="x", trace_id="t1", duration_ms=-1)

    def test_to_wire_is_json_and_drops_none(self):
        event = CustomEvent(
            event_type="x",
            trace_id="t1",
            span_id="s1",
            timestamp=datetime(2025, 1, 15, 12, 0, tzinfo=UTC),
        )

        wire = event.to_wire()

        assert wire["timestamp"].startswith("2025-01-15T12:00:00")
        assert "service" not in wire
        assert "metadata" not in wire
        assert wire["span_id"] == "s1"

    def test_unknown_keys_survive(self):
        event = parse_event({"event_type": "x", "trace_id": "t1", "parent_span_id": "p1"})

        assert event.to_wire()["parent_span_id"] == "p1"


class TestMissingRequiredFields:
    def test_complete_payload(self):
        payload = {"event_type": "x", "trace_id": "t", "timestamp": "2025-01-01T00:00:00Z"}

        assert missing_required_fields(payload) == []

    def test_reports_each_missing_field(self):
        assert missing_required_fields({"event_type": "x"}) == ["trace_id", "timestamp"]

    def test_empty_values_count_as_missing(self):
        payload = {"event_type": "", "trace_id": None, "timestamp": "2025-01-01T00:00:00Z"}

        assert missing_required_fields(payload) == ["event_type", "trace_id"]


class TestParseEvent:
    def test_decision(self, sample_decision):
        event = parse_event(sample_decision)

        assert isinstance(event, DecisionEvent)
        assert event.decision.input_count == 10
        assert event.decision.dropped[0].reason == "bad"

    def test_llm(self, sample_llm_payload):
        event = parse_event(sample_llm_payload)

        assert isinstance(event, LLMEvent)
        assert event.model.provider == "openai"
        assert event.reasoning.summary.startswith("Chose")
        assert event.params["temperature"] == 0.2

    def test_llm_requires_reasoning_summary(self, sample_llm_payload):
        sample_llm_payload["reasoning"] = {"effort": "high"}

        with pytest.raises(ValidationError):
            parse_event(sample_llm_payload)

    def test_http(self):
        event = parse_event(
            {
                "event_type": "http_request",
                "trace_id": "t1",
                "request": {"method": "GET", "url": "https://api.example.com/items"},
                "response": {"status": 502},
                "error": {"message": "Bad gateway"},
            }
        )

        assert isinstance(event, HTTPEvent)
        assert event.response.status == 502
        assert event.error.message == "Bad gateway"

    def test_anything_else_is_custom(self):
        event = parse_event({"event_type": "cart_updated", "trace_id": "t1", "data": {"items": 3}})

        assert isinstance(event, CustomEvent)
        assert event.data == {"items": 3}


class TestDecision:
    def test_drop_rate(self):
        decision = Decision(input_count=100, output_count=15)

        assert decision.drop_rate_percent == 85.0

    def test_drop_rate_with_empty_input(self):
        assert Decision(input_count=0, output_count=0).drop_rate_percent == 0

    def test_negative_counts_rejected(self):
        with pytest.raises(ValidationError):
            Decision(input_count=-1, output_count=0)

    def test_consistent_counts(self):
        decision = Decision(
            input_count=10,
            output_count=3,
            kept=[{"count": 3, "reason": "ok"}],
            dropped=[{"count": 4, "reason": "bad"}, {"count": 3, "reason": "stale"}],
        )

        assert decision.is_consistent()

    def test_under_reported_drops_are_accepted_but_inconsistent(self):
        decision = Decision(
            input_count=10,
            output_count=3,
            kept=[{"count": 3, "reason": "ok"}],
            dropped=[{"count": 2, "reason": "bad"}],
        )

        assert not decision.is_consistent()

    def test_output_above_input_is_inconsistent(self):
        assert not Decision(input_count=3, output_count=5).is_consistent()

    def test_criteria(self):
        decision = Decision(input_count=1, output_count=1, criteria={"max_price": 50})

        assert decision.criteria == {"max_price": 50}
