"""
API routers.
"""

from .orders import router as orders_router
from .public import health_router

__all__ = ["orders_router", "health_router"]
