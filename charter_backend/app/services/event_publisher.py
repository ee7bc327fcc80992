"""
Outbound domain events.

Publishers are called only after the state change an event describes has
been committed. A failed publish never rolls anything back: publish_safely
logs the failure and moves on.
"""

import inspect
import logging
from collections import defaultdict
from typing import Callable, Dict, Iterable, List, Type

from charter_backend.app.core.config import settings
from charter_backend.app.core.reliability import CircuitBreaker, notification_circuit_breaker
from charter_backend.app.schemas.events import DomainEvent

logger = logging.getLogger("charter.events")


class EventPublisher:
    """Outbound port for domain events."""

    async def publish(self, event: DomainEvent) -> None:
        raise NotImplementedError


class NullEventPublisher(EventPublisher):
    """Drops every event. Used when notifications are disabled."""

    async def publish(self, event: DomainEvent) -> None:
        logger.debug("Notifications disabled, dropping event", extra={"event_name": event.event_name})


class InMemoryEventBus(EventPublisher):
    """
    Synchronous in-process bus.

    Handlers are registered per event class and may be plain functions or
    coroutines. A failing handler is logged and does not stop the others.
    """

    def __init__(self):
        self._handlers: Dict[Type[DomainEvent], List[Callable]] = defaultdict(list)

    def subscribe(self, event_type: Type[DomainEvent], handler: Callable) -> None:
        self._handlers[event_type].append(handler)

    def unsubscribe(self, event_type: Type[DomainEvent], handler: Callable) -> None:
        if handler in self._handlers[event_type]:
            self._handlers[event_type].remove(handler)

    def handler_count(self, event_type: Type[DomainEvent]) -> int:
        return len(self._handlers[event_type])

    async def publish(self, event: DomainEvent) -> None:
        for handler in list(self._handlers[type(event)]):
            try:
                result = handler(event)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception(
                    "Event handler failed",
                    extra={"event_name": event.event_name, "event_id": event.event_id}
                )


class RedisEventPublisher(EventPublisher):
    """Publishes events as JSON on a Redis pub/sub channel."""

    def __init__(self, client, channel: str, breaker: CircuitBreaker = notification_circuit_breaker):
        self.client = client
        self.channel = channel
        self.breaker = breaker

    async def publish(self, event: DomainEvent) -> None:
        await self.breaker.call(self.client.publish, self.channel, event.model_dump_json())


async def publish_safely(publisher: EventPublisher, events: Iterable[DomainEvent]) -> None:
    """Publish committed events; failures are logged and discarded."""
    for event in events:
        try:
            await publisher.publish(event)
        except Exception:
            logger.error(
                "Failed to publish event",
                exc_info=True,
                extra={"event_name": event.event_name, "event_id": event.event_id}
            )


def build_event_publisher() -> EventPublisher:
    """Publisher for the running application, chosen from settings."""
    if not settings.notifications_enabled:
        return NullEventPublisher()

    from charter_backend.app.core.redis_client import redis_client
    return RedisEventPublisher(redis_client, settings.notification_channel)
