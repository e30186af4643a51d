import json
from typing import Any

import redis.asyncio as redis
from redis.exceptions import RedisError

from xray.exceptions import TransportError
from xray.models import BaseEvent
from xray.transports.base import BaseTransport


class RedisTransport(BaseTransport):
    """Appends events to a Redis stream for a BrokerIngestor to pick up."""

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379",
        stream_key: str = "xray_events",
        max_stream_length: int = 10000,
        **connection_kwargs: Any,
    ):
        self.redis_url = redis_url
        self.stream_key = stream_key
        self.max_stream_length = max_stream_length
        self.connection_kwargs = connection_kwargs
        self._redis = None

    async def start(self) -> None:
        if self._redis is None:
            self._redis = redis.Redis.from_url(self.redis_url, **self.connection_kwargs)

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None

    async def send(self, event: BaseEvent) -> None:
        if self._redis is None:
            await self.start()

        message_json = json.dumps(event.to_wire(), default=str)

        try:
            await self._redis.xadd(
                name=self.stream_key,
                fields={"message": message_json},
                maxlen=self.max_stream_length,
                approximate=True,
            )
        except RedisError as e:
            raise TransportError(f"Failed to append event to {self.stream_key}: {e}") from e
