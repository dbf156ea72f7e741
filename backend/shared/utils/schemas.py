"""
Shared Pydantic schemas used across the application.

Status fields are plain strings on input so that unknown values are
rejected by the order service with a 400 instead of a schema error.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from shared.config.constants import Limits, OrderItemStatus


# =============================================================================
# Common
# =============================================================================


class ErrorResponse(BaseModel):
    """Standard error body returned by AppException handlers."""

    detail: str


# =============================================================================
# Order Item Schemas
# =============================================================================


class OrderItemInput(BaseModel):
    """
    A service line supplied by the client on create / full replace.

    Commission fields are stored verbatim; they are only computed at checkout.
    """

    service_id: int
    service_name: str = Field(default="", max_length=Limits.MAX_NAME_LENGTH)
    technician_id: int | None = None
    technician_name: str = Field(default="", max_length=Limits.MAX_NAME_LENGTH)
    price: float = Field(ge=0)
    technician_commission: float = Field(default=0, ge=0)
    salesperson_id: int | None = None
    salesperson_name: str | None = None
    salesperson_commission: float = 0
    company_commission_rule_id: int | None = None
    company_commission_rule_name: str | None = None
    company_commission_type: str | None = None
    company_commission_rate: float | None = None
    company_commission_amount: float = 0
    status: str = OrderItemStatus.IN_PROGRESS
    completed_at: datetime | None = None


class OrderItemOutput(BaseModel):
    """Output for a single line of an order."""

    id: int
    position: int
    service_id: int
    service_name: str
    technician_id: int | None = None
    technician_name: str
    price: float
    technician_commission: float
    salesperson_id: int | None = None
    salesperson_name: str | None = None
    salesperson_commission: float
    company_commission_rule_id: int | None = None
    company_commission_rule_name: str | None = None
    company_commission_type: str | None = None
    company_commission_rate: float | None = None
    company_commission_amount: float
    status: str
    completed_at: datetime | None = None

    class Config:
        from_attributes = True


# =============================================================================
# Order Schemas
# =============================================================================


class OrderOutput(BaseModel):
    """Output for an order with its items in insertion order."""

    id: str
    room_id: int
    room_name: str
    customer_name: str | None = None
    customer_phone: str | None = None
    status: str
    handover_status: str
    items: list[OrderItemOutput] = []
    total_amount: float
    received_amount: float | None = None
    discount_rate: float
    notes: str | None = None
    created_at: datetime
    updated_at: datetime | None = None
    completed_at: datetime | None = None
    handover_at: datetime | None = None

    class Config:
        from_attributes = True


class CreateOrderRequest(BaseModel):
    """Request to open a new order for a room."""

    room_id: int | None = None
    room_name: str | None = Field(default=None, max_length=Limits.MAX_NAME_LENGTH)
    customer_name: str | None = Field(default=None, max_length=Limits.MAX_NAME_LENGTH)
    customer_phone: str | None = Field(default=None, max_length=32)
    items: list[OrderItemInput] = []
    total_amount: float | None = Field(default=None, ge=0)
    received_amount: float | None = Field(default=None, ge=0)
    notes: str | None = Field(default=None, max_length=Limits.MAX_NOTES_LENGTH)


class UpdateOrderRequest(BaseModel):
    """
    Partial order update. Only fields present in the request body are applied
    (see model_fields_set); supplying items replaces the whole item list.
    """

    room_id: int | None = None
    room_name: str | None = Field(default=None, max_length=Limits.MAX_NAME_LENGTH)
    customer_name: str | None = Field(default=None, max_length=Limits.MAX_NAME_LENGTH)
    customer_phone: str | None = Field(default=None, max_length=32)
    status: str | None = None
    handover_status: str | None = None
    handover_at: datetime | None = None
    total_amount: float | None = Field(default=None, ge=0)
    received_amount: float | None = Field(default=None, ge=0)
    notes: str | None = Field(default=None, max_length=Limits.MAX_NOTES_LENGTH)
    completed_at: datetime | None = None
    items: list[OrderItemInput] | None = None


class UpdateOrderStatusRequest(BaseModel):
    status: str


class AddItemRequest(BaseModel):
    """Add a service line; price and commissions come from the technician's assignment."""

    service_id: int
    technician_id: int


class CancelOrderRequest(BaseModel):
    reason: str = Field(default="", max_length=Limits.MAX_CANCEL_REASON_LENGTH)


class CheckoutRequest(BaseModel):
    """Settle an order: amount actually collected and the referring salesperson."""

    received_amount: float
    salesperson_id: int | None = None
    customer_name: str | None = Field(default=None, max_length=Limits.MAX_NAME_LENGTH)


class HandoverRequest(BaseModel):
    """Orders to hand over at shift change. Empty means every pending order."""

    order_ids: list[str] | None = None


class DeletedOrderOutput(BaseModel):
    id: str
