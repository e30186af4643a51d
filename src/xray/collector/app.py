"""
Collector API

FastAPI application that ingests events and serves trace queries and
decision analytics.

Endpoints (under the configured prefix, /v1 by default):
    POST /events                       - Ingest one event
    POST /events/batch                 - Ingest many events in one transaction
    GET  /events?trace_id=             - All events of a trace, newest first
    GET  /events/{span_id}             - One event
    GET  /traces                       - Trace summaries synthesized from events
    GET  /analytics/high-drop-traces   - Traces whose latest decision dropped the most
    GET  /analytics/drop-reasons       - Drop reasons aggregated across decisions
    GET  /analytics/funnel-stats       - Per-stage and cumulative funnel of a trace
    GET  /analytics/metadata-values    - Distinct values of a metadata field
"""

import logging
from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from xray.analytics import (
    EventFilter,
    build_funnel,
    drop_reasons,
    high_drop_traces,
    metadata_values,
)
from xray.collector.ingest import loads, prepare_batch, prepare_event
from xray.config import CollectorConfig
from xray.exceptions import (
    EventValidationError,
    InvalidBatchError,
    InvalidQueryError,
    MissingFieldsError,
    NoDecisionEventsError,
    NotFoundError,
)
from xray.metadata import MetadataFilter
from xray.store import EventStore, MemoryEventStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["events"])


# ============================================================
# Dependencies and helpers
# ============================================================


def get_store(request: Request) -> EventStore:
    return request.app.state.store


def get_config(request: Request) -> CollectorConfig:
    return request.app.state.config


def _failure(exc: Exception, message: str) -> JSONResponse:
    """Map an exception raised while serving a request to its JSON response.

    Must be called from inside the `except` block so unexpected errors are
    logged with their traceback.
    """
    if isinstance(exc, MissingFieldsError):
        body: dict[str, Any] = {
            "error": "Missing required fields",
            "required": exc.required,
            "missing": exc.missing,
        }
        if exc.index is not None:
            body["index"] = exc.index
        return JSONResponse(status_code=400, content=body)
    if isinstance(exc, InvalidBatchError) and exc.index is not None:
        return JSONResponse(status_code=400, content={"error": str(exc), "index": exc.index})
    if isinstance(exc, EventValidationError):
        return JSONResponse(status_code=400, content={"error": str(exc)})
    if isinstance(exc, NoDecisionEventsError):
        return JSONResponse(
            status_code=404,
            content={"error": "No decision events found for this trace", "trace_id": exc.trace_id},
        )
    if isinstance(exc, NotFoundError):
        return JSONResponse(status_code=404, content={"error": str(exc)})

    logger.exception(message)
    return JSONResponse(status_code=500, content={"error": message, "details": str(exc)})


def _float_param(request: Request, name: str, default: float) -> float:
    raw = request.query_params.get(name)
    if raw in (None, ""):
        return default
    try:
        return float(raw)
    except ValueError:
        raise InvalidQueryError(f"{name} must be a number, got {raw!r}") from None


def _int_param(request: Request, name: str, default: int) -> int:
    raw = request.query_params.get(name)
    if raw in (None, ""):
        return default
    try:
        return int(raw)
    except ValueError:
        raise InvalidQueryError(f"{name} must be an integer, got {raw!r}") from None


def _event_filter(request: Request, *, with_trace: bool = False) -> EventFilter:
    params = request.query_params
    return EventFilter(
        service=params.get("service") or None,
        trace_id=(params.get("trace_id") or None) if with_trace else None,
        metadata=MetadataFilter.from_query(params.multi_items()),
    )


async def _body(request: Request) -> Any:
    return loads(await request.body())


# ============================================================
# Ingestion
# ============================================================


@router.post("/events")
async def ingest_event(request: Request, store: EventStore = Depends(get_store)):
    try:
        record = prepare_event(await _body(request))
        stored = await store.append(record)
    except Exception as e:
        return _failure(e, "Failed to ingest event")

    return JSONResponse(
        status_code=201,
        content={
            "id": stored.span_id,
            "trace_id": stored.trace_id,
            "message": "Event ingested successfully",
        },
    )


@router.post("/events/batch")
async def ingest_batch(request: Request, store: EventStore = Depends(get_store)):
    try:
        records = prepare_batch(await _body(request))
        await store.append_batch(records)
    except Exception as e:
        return _failure(e, "Failed to ingest events")

    return JSONResponse(
        status_code=201,
        content={
            "message": f"{len(records)} events ingested successfully",
            "count": len(records),
        },
    )


# ============================================================
# Event and trace queries
# ============================================================


@router.get("/events")
async def list_trace_events(request: Request, store: EventStore = Depends(get_store)):
    trace_id = request.query_params.get("trace_id")
    if not trace_id:
        return JSONResponse(status_code=400, content={"error": "trace_id query parameter is required"})

    try:
        records = await store.by_trace(trace_id)
    except Exception as e:
        return _failure(e, "Failed to query events")

    records = sorted(records, key=lambda r: (r.timestamp, r.sequence), reverse=True)
    return {
        "trace_id": trace_id,
        "count": len(records),
        "events": [record.data for record in records],
    }


@router.get("/events/{span_id}")
async def get_event(span_id: str, store: EventStore = Depends(get_store)):
    try:
        record = await store.get(span_id)
    except Exception as e:
        return _failure(e, "Failed to query event")

    if record is None:
        return JSONResponse(status_code=404, content={"error": "Event not found"})
    return record.data


@router.get("/traces")
async def list_traces(
    store: EventStore = Depends(get_store),
    config: CollectorConfig = Depends(get_config),
):
    try:
        summaries = await store.trace_summaries(limit=config.trace_list_limit)
    except Exception as e:
        return _failure(e, "Failed to fetch traces")

    return [summary.to_wire() for summary in summaries]


# ============================================================
# Analytics
# ============================================================


@router.get("/analytics/high-drop-traces")
async def get_high_drop_traces(
    request: Request,
    store: EventStore = Depends(get_store),
    config: CollectorConfig = Depends(get_config),
):
    try:
        threshold = _float_param(request, "threshold", config.high_drop_threshold)
        limit = _int_param(request, "limit", config.high_drop_limit)
        traces = high_drop_traces(
            await store.scan(event_type="decision"),
            threshold=threshold,
            limit=limit,
            event_filter=_event_filter(request),
        )
    except Exception as e:
        return _failure(e, "Failed to query high drop traces")

    return {
        "threshold": threshold,
        "count": len(traces),
        "traces": [trace.to_wire() for trace in traces],
    }


@router.get("/analytics/drop-reasons")
async def get_drop_reasons(
    request: Request,
    store: EventStore = Depends(get_store),
    config: CollectorConfig = Depends(get_config),
):
    try:
        limit = _int_param(request, "limit", config.drop_reasons_limit)
        reasons = drop_reasons(
            await store.scan(event_type="decision"),
            event_filter=_event_filter(request, with_trace=True),
            limit=limit,
        )
    except Exception as e:
        return _failure(e, "Failed to query drop reasons")

    return {
        "count": len(reasons),
        "reasons": [reason.to_wire() for reason in reasons],
    }


@router.get("/analytics/funnel-stats")
async def get_funnel_stats(request: Request, store: EventStore = Depends(get_store)):
    trace_id = request.query_params.get("trace_id")
    if not trace_id:
        return JSONResponse(status_code=400, content={"error": "trace_id query parameter is required"})

    try:
        stats = build_funnel(trace_id, await store.by_trace(trace_id))
    except Exception as e:
        return _failure(e, "Failed to query funnel stats")

    return stats.to_wire()


@router.get("/analytics/metadata-values")
async def get_metadata_values(request: Request, store: EventStore = Depends(get_store)):
    field = request.query_params.get("field")
    if not field:
        return JSONResponse(status_code=400, content={"error": "field query parameter is required"})

    try:
        values = metadata_values(
            await store.scan(),
            field,
            event_type=request.query_params.get("event_type") or None,
        )
    except Exception as e:
        return _failure(e, "Failed to query metadata values")

    return {
        "field": field,
        "values": [value.to_wire() for value in values],
    }


# ============================================================
# Application
# ============================================================


def create_app(store: EventStore | None = None, config: CollectorConfig | None = None) -> FastAPI:
    """Build the collector application.

    Args:
        store: Event store backend; a fresh MemoryEventStore if omitted
        config: Collector configuration; defaults if omitted
    """
    config = config or CollectorConfig()
    app = FastAPI(title="X-Ray Collector API")
    app.state.store = store if store is not None else MemoryEventStore()
    app.state.config = config

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        logger.info(f"{request.method} {request.url.path}")
        return await call_next(request)

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            return JSONResponse(status_code=404, content={"error": "Route not found"})
        return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        logger.error(f"Unhandled error: {exc}")
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error", "details": str(exc)},
        )

    @app.get("/health")
    async def health():
        return {"status": "ok", "timestamp": datetime.now(UTC).isoformat()}

    app.include_router(router, prefix=config.api_prefix)
    return app
