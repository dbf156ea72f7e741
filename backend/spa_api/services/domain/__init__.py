"""
Domain Services - application layer.

Structure:
    Router (thin controller)
        ↓
    Service (business logic)  ← YOU ARE HERE
        ↓
    Repository (data access)
        ↓
    Model (entity)

Usage:
    from spa_api.services.domain import OrderService

    # In router
    service = OrderService(db, notifier)
    order = service.get_order(order_id)
"""

from .order_service import OrderService
from .order_id import OrderIdGenerator
from .resources import ResourceCoordinator

__all__ = [
    "OrderService",
    "OrderIdGenerator",
    "ResourceCoordinator",
]
