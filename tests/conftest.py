"""Shared test fixtures and configuration for xray tests."""

import pytest
from fastapi.testclient import TestClient

from xray.collector import create_app
from xray.config import LoggerConfig
from xray.logger import XRayLogger
from xray.store import MemoryEventStore
from tests.test_helpers import CapturingTransport


@pytest.fixture
def store():
    return MemoryEventStore()


@pytest.fixture
def api(store):
    """Collector API bound to an in-memory store."""
    with TestClient(create_app(store=store), raise_server_exceptions=False) as client:
        yield client


@pytest.fixture
def transport():
    return CapturingTransport()


@pytest.fixture
def xray_logger(transport):
    return XRayLogger(LoggerConfig(service="search-api"), transport=transport)


@pytest.fixture
def sample_decision():
    """Wire payload of a decision event."""
    return {
        "event_type": "decision",
        "trace_id": "trace-1",
        "span_id": "span-1",
        "timestamp": "2025-01-15T12:00:00Z",
        "duration_ms": 12,
        "service": "search",
        "decision": {
            "input_count": 10,
            "output_count": 3,
            "kept": [{"count": 3, "reason": "ok"}],
            "dropped": [{"count": 7, "reason": "bad"}],
        },
        "metadata": {"domain": "fraud_detection"},
    }


@pytest.fixture
def sample_llm_payload():
    return {
        "event_type": "llm_call",
        "trace_id": "trace-1",
        "timestamp": "2025-01-15T12:00:00Z",
        "duration_ms": 850,
        "reasoning": {"summary": "Chose the cheapest matching item", "effort": "low"},
        "model": {"provider": "openai", "name": "gpt-4o-mini"},
        "params": {"temperature": 0.2},
        "input": {"input_tokens": 120},
        "output": {"output_tokens": 40, "finish_reason": "stop"},
    }
