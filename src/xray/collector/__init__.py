"""Collector: ingestion boundary and HTTP API."""

from xray.collector.app import create_app
from xray.collector.ingest import prepare_batch, prepare_event

__all__ = [
    "create_app",
    "prepare_batch",
    "prepare_event",
]
