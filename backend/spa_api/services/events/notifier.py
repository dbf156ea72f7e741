"""
Change Notifier.

Observers (dashboards, other staff terminals) learn about committed order
changes through a publish interface injected into the order service.

Events are hints: the REST response is authoritative for the caller, and
every event carries the full resulting order (deletions carry only the id)
so an observer can merge any kind it receives. Delivery is best effort;
observers must tolerate missed or duplicated events.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from typing import Any, Protocol

from shared.config.logging import events_logger as logger
from shared.config.settings import settings
from shared.infrastructure.events import ChangeEvent, get_redis_client, publish_event
from shared.utils.schemas import OrderOutput
from spa_api.models import Order

Subscriber = Callable[[ChangeEvent], None]

# Events kept by an InMemoryChangeNotifier for inspection
DEFAULT_HISTORY_SIZE = 100


class ChangeNotifier(Protocol):
    """Publishes a committed change. Implementations must not raise."""

    def publish(self, event_type: str, data: dict[str, Any]) -> None:
        ...


def order_payload(order: Order) -> dict[str, Any]:
    """JSON-ready representation of an order, identical to the REST response."""
    return OrderOutput.model_validate(order).model_dump(mode="json")


class RedisChangeNotifier:
    """
    Publishes change events on a Redis pub/sub channel.

    Usage:
        notifier = RedisChangeNotifier()
        notifier.publish("order-created", order_payload(order))
    """

    def __init__(
        self,
        client_factory: Callable[[], Any] = get_redis_client,
        channel: str | None = None,
    ):
        self._client_factory = client_factory
        self._channel = channel or settings.events_channel

    @property
    def channel(self) -> str:
        return self._channel

    def publish(self, event_type: str, data: dict[str, Any]) -> None:
        try:
            event = ChangeEvent(type=event_type, data=data)
            receivers = publish_event(self._client_factory(), self._channel, event)
            logger.debug(
                "Change event published",
                event_type=event_type,
                channel=self._channel,
                receivers=receivers,
            )
        except Exception as e:
            logger.error(
                "Failed to publish change event",
                event_type=event_type,
                channel=self._channel,
                error=str(e),
            )


class InMemoryChangeNotifier:
    """
    In-process fan-out to registered subscribers.

    Used when Redis events are disabled and in tests. The most recent
    `history_size` events are kept in `events` for inspection; the
    process-wide instance keeps none.
    """

    def __init__(self, history_size: int = DEFAULT_HISTORY_SIZE):
        self._subscribers: list[Subscriber] = []
        self._lock = threading.Lock()
        self._history_size = max(history_size, 0)
        self.events: list[ChangeEvent] = []

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a subscriber. Returns a function that unsubscribes it."""
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def publish(self, event_type: str, data: dict[str, Any]) -> None:
        try:
            event = ChangeEvent(type=event_type, data=data)
        except ValueError as e:
            logger.error("Invalid change event", event_type=event_type, error=str(e))
            return

        with self._lock:
            if self._history_size:
                self.events.append(event)
                overflow = len(self.events) - self._history_size
                if overflow > 0:
                    del self.events[:overflow]
            subscribers = list(self._subscribers)

        for callback in subscribers:
            try:
                callback(event)
            except Exception as e:
                logger.error(
                    "Change event subscriber failed",
                    event_type=event_type,
                    error=str(e),
                )

    def types(self) -> list[str]:
        """Published event types in order."""
        return [event.type for event in self.events]

    def clear(self) -> None:
        self.events.clear()


_notifier: ChangeNotifier | None = None
_notifier_lock = threading.Lock()


def get_change_notifier() -> ChangeNotifier:
    """
    FastAPI dependency returning the process-wide notifier.

    Redis when events are enabled, otherwise in-process fan-out.
    """
    global _notifier
    if _notifier is None:
        with _notifier_lock:
            if _notifier is None:
                if settings.events_enabled:
                    _notifier = RedisChangeNotifier()
                else:
                    _notifier = InMemoryChangeNotifier(history_size=0)
    return _notifier
