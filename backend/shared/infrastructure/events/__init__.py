"""
Event System for change notifications via Redis pub/sub.

Modules:
- circuit_breaker.py: Circuit breaker pattern for resilience
- event_types.py: Event type constants
- event_schema.py: ChangeEvent envelope with validation
- redis_pool.py: Connection pool management
- publisher.py: Core publish_event with retry
"""

from .circuit_breaker import (
    CircuitState,
    EventCircuitBreaker,
    get_event_circuit_breaker,
    calculate_retry_delay_with_jitter,
)
from .event_types import (
    ORDER_CREATED,
    ORDER_UPDATED,
    ORDER_STATUS_UPDATED,
    ORDER_DELETED,
    ORDER_CHECKOUT,
    ALL_EVENT_TYPES,
    MAX_EVENT_SIZE,
)
from .event_schema import ChangeEvent
from .redis_pool import get_redis_client, close_redis_pool
from .publisher import publish_event

__all__ = [
    # Circuit breaker
    "CircuitState",
    "EventCircuitBreaker",
    "get_event_circuit_breaker",
    "calculate_retry_delay_with_jitter",
    # Event types
    "ORDER_CREATED",
    "ORDER_UPDATED",
    "ORDER_STATUS_UPDATED",
    "ORDER_DELETED",
    "ORDER_CHECKOUT",
    "ALL_EVENT_TYPES",
    "MAX_EVENT_SIZE",
    # Schema
    "ChangeEvent",
    # Redis pool
    "get_redis_client",
    "close_redis_pool",
    # Publishing
    "publish_event",
]
