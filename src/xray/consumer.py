"""Broker ingestion using FastStream.

Events that producers publish to a broker (for example through RedisTransport)
are validated by the same ingestion boundary as the HTTP collector and then
appended to an event store.
"""

import logging
import os
from typing import Any, Literal

from faststream import FastStream

from xray.brokers import broker_scheme, create_broker
from xray.collector.ingest import loads, prepare_event
from xray.exceptions import XRayError
from xray.store import EventStore, StoredEvent

logger = logging.getLogger(__name__)

OnInvalid = Literal["log", "raise", "ignore"]


class BrokerIngestor:
    """Consumes events from a broker and appends them to a store."""

    def __init__(
        self,
        store: EventStore,
        broker_url: str | None = None,
        target: str | None = None,
        on_invalid: OnInvalid = "log",
        **broker_kwargs: Any,
    ):
        self.store = store
        self.broker_url = broker_url or os.getenv("XRAY_BROKER_URL")
        self.target = target or os.getenv("XRAY_TARGET", "xray_events")
        self.on_invalid = on_invalid

        if not self.broker_url:
            raise ValueError("broker_url required")

        self.broker_kwargs = broker_kwargs
        self._broker = None
        self._app = None
        self._subscribed = False

    @property
    def broker(self):
        if self._broker is None:
            self._broker = create_broker(self.broker_url, **self.broker_kwargs)
        return self._broker

    @property
    def app(self):
        if self._app is None:
            self._subscribe()
            self._app = FastStream(self.broker)
        return self._app

    def _subscribe(self) -> None:
        if self._subscribed:
            return

        scheme = broker_scheme(self.broker_url)
        if scheme == "redis":
            from faststream.redis import StreamSub

            subscriber = self.broker.subscriber(stream=StreamSub(self.target, last_id="0"))
        elif scheme in ("amqp", "rabbitmq"):
            subscriber = self.broker.subscriber(queue=self.target)
        else:
            subscriber = self.broker.subscriber(self.target)

        @subscriber
        async def ingest(raw_event: Any) -> None:
            await self.handle_message(raw_event)

        self._subscribed = True

    @staticmethod
    def decode(raw_event: Any) -> Any:
        """Unwrap the payload written by RedisTransport (`{"message": "<json>"}`)."""
        if isinstance(raw_event, bytes):
            raw_event = raw_event.decode()
        if isinstance(raw_event, str):
            raw_event = loads(raw_event)
        if isinstance(raw_event, dict) and isinstance(raw_event.get("message"), str | bytes):
            return loads(raw_event["message"])
        return raw_event

    async def handle_message(self, raw_event: Any) -> StoredEvent | None:
        """Validate and store one message.

        Returns the stored record, or None when the message was rejected and
        the invalid-message policy is "log" or "ignore".
        """
        try:
            record = prepare_event(self.decode(raw_event))
            return await self.store.append(record)
        except (XRayError, ValueError) as e:
            if self.on_invalid == "raise":
                raise
            elif self.on_invalid == "log":
                logger.warning(f"Rejected event from {self.target}: {e}")
            return None

    async def start(self) -> None:
        self._subscribe()
        await self.broker.start()

    async def stop(self) -> None:
        await self.broker.stop()

    async def run(self) -> None:
        """Run the FastStream app until stopped."""
        await self.app.run()
