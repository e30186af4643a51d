"""Base transport interface."""

from abc import ABC, abstractmethod

from xray.models import BaseEvent


class BaseTransport(ABC):
    """Delivers events from an XRayLogger to wherever they are collected.

    `send` raises TransportError on failure; the logger's error policy decides
    what the caller sees.
    """

    @abstractmethod
    async def send(self, event: BaseEvent) -> None:
        """Deliver one event."""

    async def close(self) -> None:
        """Release connections held by the transport."""

    async def __aenter__(self) -> "BaseTransport":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
