"""
SQLAlchemy ORM Models Package.

- base: Base class and TimestampMixin
- order: Order, OrderItem, OrderSequence
- catalog: Room, ServiceItem, Technician, TechnicianService, Salesperson,
  CompanyCommissionRule
"""

from .base import Base, TimestampMixin

from .order import Order, OrderItem, OrderSequence

from .catalog import (
    Room,
    ServiceItem,
    Technician,
    TechnicianService,
    Salesperson,
    CompanyCommissionRule,
)

__all__ = [
    "Base",
    "TimestampMixin",
    "Order",
    "OrderItem",
    "OrderSequence",
    "Room",
    "ServiceItem",
    "Technician",
    "TechnicianService",
    "Salesperson",
    "CompanyCommissionRule",
]
