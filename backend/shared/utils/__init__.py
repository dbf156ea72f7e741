"""
Utilities module: Exceptions, schemas.
"""

from shared.utils.exceptions import (
    NotFoundError,
    OrderNotFoundError,
    OrderItemNotFoundError,
    ValidationError,
    InvalidStateError,
    ConflictError,
    PersistenceError,
)
from shared.utils.schemas import ErrorResponse

__all__ = [
    # exceptions
    "NotFoundError",
    "OrderNotFoundError",
    "OrderItemNotFoundError",
    "ValidationError",
    "InvalidStateError",
    "ConflictError",
    "PersistenceError",
    # schemas
    "ErrorResponse",
]
