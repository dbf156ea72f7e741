"""
Change event type constants.

Observers subscribe to a single channel and dispatch on the event type.
"""

from shared.config.settings import settings

# Order lifecycle
ORDER_CREATED = "order-created"
ORDER_UPDATED = "order-updated"
ORDER_STATUS_UPDATED = "order-status-updated"
ORDER_DELETED = "order-deleted"
ORDER_CHECKOUT = "order-checkout"

ALL_EVENT_TYPES = frozenset({
    ORDER_CREATED,
    ORDER_UPDATED,
    ORDER_STATUS_UPDATED,
    ORDER_DELETED,
    ORDER_CHECKOUT,
})

# Maximum serialized event size in bytes
MAX_EVENT_SIZE = settings.events_max_size
