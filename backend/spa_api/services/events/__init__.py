"""
Change notification for committed order mutations.
"""

from .notifier import (
    ChangeNotifier,
    RedisChangeNotifier,
    InMemoryChangeNotifier,
    get_change_notifier,
    order_payload,
)

__all__ = [
    "ChangeNotifier",
    "RedisChangeNotifier",
    "InMemoryChangeNotifier",
    "get_change_notifier",
    "order_payload",
]
