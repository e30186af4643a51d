"""Async client for the collector's query and analytics endpoints.

A 404 means "nothing to show": lookups of a single event or a funnel return
None instead of raising. Any other non-2xx response raises TransportError.
"""

from typing import Any

import httpx

from xray.config import DEFAULT_ENDPOINT
from xray.exceptions import TransportError


class XRayClient:
    def __init__(
        self,
        endpoint: str = DEFAULT_ENDPOINT,
        api_key: str | None = None,
        api_prefix: str = "/v1",
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.base_url = f"{endpoint.rstrip('/')}{api_prefix}"
        self._headers = {"Authorization": f"Bearer {api_key}"} if api_key else {}
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def _get(self, path: str, params: Any = None, allow_missing: bool = False) -> Any:
        try:
            response = await self._client.get(f"{self.base_url}{path}", params=params, headers=self._headers)
        except httpx.HTTPError as e:
            raise TransportError(f"Failed to fetch {path}: {e}") from e

        if response.status_code == 404 and allow_missing:
            return None
        if response.is_error:
            raise TransportError(
                f"Failed to fetch {path}: {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
            )
        return response.json()

    @staticmethod
    def _filters(
        service: str | None = None,
        metadata: dict[str, str] | None = None,
        **extra: Any,
    ) -> list[tuple[str, str]]:
        params = [(key, str(value)) for key, value in extra.items() if value is not None]
        if service:
            params.append(("service", service))
        for key, value in (metadata or {}).items():
            params.append((f"metadata.{key}", value))
        return params

    async def traces(self) -> list[dict[str, Any]]:
        return await self._get("/traces")

    async def events(self, trace_id: str) -> dict[str, Any]:
        return await self._get("/events", params={"trace_id": trace_id})

    async def event(self, span_id: str) -> dict[str, Any] | None:
        return await self._get(f"/events/{span_id}", allow_missing=True)

    async def high_drop_traces(
        self,
        threshold: float = 0.9,
        service: str | None = None,
        limit: int = 50,
        metadata: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        params = self._filters(service, metadata, threshold=threshold, limit=limit)
        return await self._get("/analytics/high-drop-traces", params=params)

    async def drop_reasons(
        self,
        service: str | None = None,
        trace_id: str | None = None,
        metadata: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        params = self._filters(service, metadata, trace_id=trace_id)
        return await self._get("/analytics/drop-reasons", params=params)

    async def funnel_stats(self, trace_id: str) -> dict[str, Any] | None:
        """Return the funnel of a trace, or None if it has no decision events."""
        return await self._get(
            "/analytics/funnel-stats", params={"trace_id": trace_id}, allow_missing=True
        )

    async def metadata_values(self, field: str, event_type: str | None = None) -> dict[str, Any]:
        params = self._filters(field=field, event_type=event_type)
        return await self._get("/analytics/metadata-values", params=params)

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "XRayClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
