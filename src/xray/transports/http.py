"""HTTP transport posting events to the collector."""

import json
import logging

import httpx

from xray.config import DEFAULT_ENDPOINT, LoggerConfig
from xray.exceptions import TransportError
from xray.models import BaseEvent
from xray.transports.base import BaseTransport

logger = logging.getLogger(__name__)

EVENTS_PATH = "/v1/events"


class HTTPTransport(BaseTransport):
    def __init__(
        self,
        endpoint: str = DEFAULT_ENDPOINT,
        api_key: str | None = None,
        debug: bool = False,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ):
        """Initialize the transport.

        Args:
            endpoint: Collector base URL; events go to {endpoint}/v1/events
            api_key: Sent as `Authorization: Bearer <api_key>` when set
            debug: Log each payload before sending
            timeout: Request timeout in seconds
            client: Shared httpx client; the transport creates and owns one if omitted
        """
        self.endpoint = endpoint.rstrip("/")
        self.api_key = api_key
        self.debug = debug
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    @classmethod
    def from_config(cls, config: LoggerConfig) -> "HTTPTransport":
        return cls(
            endpoint=config.endpoint,
            api_key=config.api_key,
            debug=config.debug,
            timeout=config.timeout,
        )

    @property
    def url(self) -> str:
        return f"{self.endpoint}{EVENTS_PATH}"

    def headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
            self._owns_client = True
        return self._client

    async def send(self, event: BaseEvent) -> None:
        payload = event.to_wire()
        if self.debug:
            logger.debug(f"Sending event: {json.dumps(payload, indent=2)}")

        try:
            response = await self._get_client().post(self.url, json=payload, headers=self.headers())
        except httpx.HTTPError as e:
            raise TransportError(f"Failed to send event: {e}") from e

        if response.is_error:
            raise TransportError(
                f"Failed to send event: {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
            )

        if self.debug:
            logger.debug(f"Event {event.span_id} sent successfully")

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
