"""
Centralized constants for the backend application.
Avoids magic strings for statuses and commission modes.

Usage:
    from shared.config.constants import OrderStatus, CompanyCommissionType

    if order.status == OrderStatus.IN_PROGRESS:
        ...
"""

from typing import Final


# =============================================================================
# Order Status Constants
# =============================================================================


class OrderStatus:
    """Order status constants. IN_PROGRESS is the open state."""

    IN_PROGRESS: Final[str] = "in_progress"
    COMPLETED: Final[str] = "completed"
    CANCELLED: Final[str] = "cancelled"

    ALL: Final[list[str]] = [IN_PROGRESS, COMPLETED, CANCELLED]


class HandoverStatus:
    """Shift handover status, independent of the order status."""

    PENDING: Final[str] = "pending"
    HANDED_OVER: Final[str] = "handed_over"

    ALL: Final[list[str]] = [PENDING, HANDED_OVER]


class OrderItemStatus:
    """Per-line status allowing partial completion of an order."""

    PENDING: Final[str] = "pending"
    IN_PROGRESS: Final[str] = "in_progress"
    COMPLETED: Final[str] = "completed"

    ALL: Final[list[str]] = [PENDING, IN_PROGRESS, COMPLETED]


# =============================================================================
# Commission Constants
# =============================================================================


class CompanyCommissionType:
    """How the company share of a service line is computed."""

    NONE: Final[str] = "none"
    REVENUE: Final[str] = "revenue"  # share of the collected line amount
    PROFIT: Final[str] = "profit"  # share of what is left after technician and salesperson

    ALL: Final[list[str]] = [NONE, REVENUE, PROFIT]


class SalespersonCommissionType:
    """Salesperson payout modes."""

    FIXED: Final[str] = "fixed"  # flat amount per line
    PERCENTAGE: Final[str] = "percentage"  # percent of the line price, scaled by discount

    ALL: Final[list[str]] = [FIXED, PERCENTAGE]


# =============================================================================
# Collaborator Status Constants
# =============================================================================


class RoomStatus:
    """Room status constants."""

    AVAILABLE: Final[str] = "available"
    OCCUPIED: Final[str] = "occupied"
    MAINTENANCE: Final[str] = "maintenance"


class TechnicianStatus:
    """Technician status constants."""

    AVAILABLE: Final[str] = "available"
    BUSY: Final[str] = "busy"
    OFFLINE: Final[str] = "offline"


# =============================================================================
# Order Numbering
# =============================================================================


class OrderNumbering:
    """Order id layout: YYYYMMDDHHMMSS followed by a zero-padded daily sequence."""

    TIMESTAMP_FORMAT: Final[str] = "%Y%m%d%H%M%S"
    SEQUENCE_WIDTH: Final[int] = 3


# =============================================================================
# Pagination & Limits
# =============================================================================


class Limits:
    """Application limits and constraints."""

    DEFAULT_PAGE_SIZE: Final[int] = 50
    MAX_PAGE_SIZE: Final[int] = 200

    MAX_NOTES_LENGTH: Final[int] = 2000
    MAX_NAME_LENGTH: Final[int] = 100
    MAX_CANCEL_REASON_LENGTH: Final[int] = 500


CANCEL_REASON_PREFIX: Final[str] = "Cancel reason: "
