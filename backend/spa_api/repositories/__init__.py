"""
Repository layer: data access for orders and catalog reads.
"""

from .base import BaseRepository, RepositoryFilters
from .order import OrderRepository, OrderFilters
from .catalog import CatalogRepository

__all__ = [
    "BaseRepository",
    "RepositoryFilters",
    "OrderRepository",
    "OrderFilters",
    "CatalogRepository",
]
