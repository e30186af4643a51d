"""FastStream broker factory for broker ingestion.

Broker classes are imported on demand so only the extra for the broker in use
has to be installed.
"""

import importlib
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class MessageBroker(Protocol):
    """Minimal broker interface used by the broker ingestor."""

    async def start(self) -> None:
        ...

    async def stop(self) -> None:
        ...

    def subscriber(self, *args: Any, **kwargs: Any) -> Any:
        ...


# scheme -> (module, broker class, package extra, display name)
_BROKERS = {
    "redis": ("faststream.redis", "RedisBroker", "redis", "Redis"),
    "amqp": ("faststream.rabbit", "RabbitBroker", "rabbitmq", "RabbitMQ"),
    "rabbitmq": ("faststream.rabbit", "RabbitBroker", "rabbitmq", "RabbitMQ"),
    "nats": ("faststream.nats", "NatsBroker", "nats", "NATS"),
    "kafka": ("faststream.kafka", "KafkaBroker", "kafka", "Kafka"),
}


def broker_scheme(url: str) -> str:
    return url.split("://")[0].lower()


def create_broker(url: str, **kwargs) -> MessageBroker:
    """Create a FastStream broker from URL.

    Kafka brokers take bootstrap servers rather than a URL, so the scheme is
    stripped for them.

    Args:
        url: Broker URL (redis://, amqp://, rabbitmq://, nats://, kafka://)
        **kwargs: Additional broker-specific configuration

    Raises:
        ImportError: If the broker's FastStream extra is not installed
        ValueError: If the URL scheme is not supported
    """
    scheme = broker_scheme(url)
    if scheme not in _BROKERS:
        raise ValueError(
            f"Unsupported broker URL scheme: {scheme}. "
            f"Supported: {', '.join(f'{s}://' for s in _BROKERS)}"
        )

    module_name, class_name, extra, label = _BROKERS[scheme]
    try:
        broker_cls = getattr(importlib.import_module(module_name), class_name)
    except ImportError:
        raise ImportError(
            f"{label} support not installed. "
            f"Install with: pip install 'xray-events[{extra}]'"
        ) from None

    if scheme == "kafka":
        return broker_cls(url.split("://", 1)[1], **kwargs)
    return broker_cls(url, **kwargs)
