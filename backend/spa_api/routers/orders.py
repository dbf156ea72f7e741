"""
Orders router.
Thin controllers over OrderService; every route maps to one operation.
"""

from fastapi import APIRouter, Depends, Query, status

from shared.config.constants import Limits
from shared.utils.schemas import (
    AddItemRequest,
    CancelOrderRequest,
    CheckoutRequest,
    CreateOrderRequest,
    DeletedOrderOutput,
    HandoverRequest,
    OrderOutput,
    UpdateOrderRequest,
    UpdateOrderStatusRequest,
)
from spa_api.core.dependencies import get_order_service
from spa_api.services.domain import OrderService


router = APIRouter(prefix="/api/orders", tags=["orders"])


# =============================================================================
# Queries
# =============================================================================


@router.get("", response_model=list[OrderOutput])
def list_orders(
    status_filter: str | None = Query(default=None, alias="status"),
    handover_status: str | None = None,
    room_id: int | None = None,
    limit: int = Query(default=Limits.DEFAULT_PAGE_SIZE, ge=1, le=Limits.MAX_PAGE_SIZE),
    offset: int = Query(default=0, ge=0),
    service: OrderService = Depends(get_order_service),
) -> list[OrderOutput]:
    """List orders, newest first."""
    orders = service.list_orders(
        status=status_filter,
        handover_status=handover_status,
        room_id=room_id,
        limit=limit,
        offset=offset,
    )
    return [OrderOutput.model_validate(order) for order in orders]


@router.get("/{order_id}", response_model=OrderOutput)
def get_order(
    order_id: str,
    service: OrderService = Depends(get_order_service),
) -> OrderOutput:
    return OrderOutput.model_validate(service.get_order(order_id))


# =============================================================================
# Create / update / delete
# =============================================================================


@router.post("", response_model=OrderOutput, status_code=status.HTTP_201_CREATED)
def create_order(
    body: CreateOrderRequest,
    service: OrderService = Depends(get_order_service),
) -> OrderOutput:
    """Open an order for a room. Items may be empty and added later."""
    return OrderOutput.model_validate(service.create_order(body))


@router.put("/{order_id}", response_model=OrderOutput)
def update_order(
    order_id: str,
    body: UpdateOrderRequest,
    service: OrderService = Depends(get_order_service),
) -> OrderOutput:
    """
    Partial update: only fields present in the body change.
    Supplying items replaces the entire item list.
    """
    return OrderOutput.model_validate(service.update_order(order_id, body))


@router.patch("/{order_id}/status", response_model=OrderOutput)
def update_order_status(
    order_id: str,
    body: UpdateOrderStatusRequest,
    service: OrderService = Depends(get_order_service),
) -> OrderOutput:
    return OrderOutput.model_validate(service.update_order_status(order_id, body.status))


@router.delete("/{order_id}", response_model=DeletedOrderOutput)
def delete_order(
    order_id: str,
    service: OrderService = Depends(get_order_service),
) -> DeletedOrderOutput:
    service.delete_order(order_id)
    return DeletedOrderOutput(id=order_id)


# =============================================================================
# Items
# =============================================================================


@router.post("/{order_id}/items", response_model=OrderOutput, status_code=status.HTTP_201_CREATED)
def add_item(
    order_id: str,
    body: AddItemRequest,
    service: OrderService = Depends(get_order_service),
) -> OrderOutput:
    order = service.add_item(order_id, body.service_id, body.technician_id)
    return OrderOutput.model_validate(order)


@router.delete("/{order_id}/items/{item_id}", response_model=OrderOutput)
def remove_item(
    order_id: str,
    item_id: int,
    service: OrderService = Depends(get_order_service),
) -> OrderOutput:
    """Remove a line. Removing the last line cancels the order."""
    return OrderOutput.model_validate(service.remove_item(order_id, item_id))


@router.patch("/{order_id}/items/{item_id}/complete", response_model=OrderOutput)
def complete_item(
    order_id: str,
    item_id: int,
    service: OrderService = Depends(get_order_service),
) -> OrderOutput:
    return OrderOutput.model_validate(service.complete_item(order_id, item_id))


# =============================================================================
# Lifecycle
# =============================================================================


@router.post("/{order_id}/cancel", response_model=OrderOutput)
def cancel_order(
    order_id: str,
    body: CancelOrderRequest,
    service: OrderService = Depends(get_order_service),
) -> OrderOutput:
    return OrderOutput.model_validate(service.cancel_order(order_id, body.reason))


@router.post("/{order_id}/complete", response_model=OrderOutput)
def complete_order(
    order_id: str,
    service: OrderService = Depends(get_order_service),
) -> OrderOutput:
    return OrderOutput.model_validate(service.complete_order(order_id))


@router.post("/{order_id}/checkout", response_model=OrderOutput)
def checkout(
    order_id: str,
    body: CheckoutRequest,
    service: OrderService = Depends(get_order_service),
) -> OrderOutput:
    """Stamp received amount, discount rate and commissions. Status is unchanged."""
    return OrderOutput.model_validate(service.checkout(order_id, body))


@router.post("/{order_id}/complete-checkout", response_model=OrderOutput)
def complete_and_checkout(
    order_id: str,
    body: CheckoutRequest,
    service: OrderService = Depends(get_order_service),
) -> OrderOutput:
    return OrderOutput.model_validate(service.complete_and_checkout(order_id, body))


@router.post("/handover", response_model=list[OrderOutput])
def handover(
    body: HandoverRequest,
    service: OrderService = Depends(get_order_service),
) -> list[OrderOutput]:
    """Hand over the given orders, or every pending one when none are given."""
    orders = service.handover(body.order_ids)
    return [OrderOutput.model_validate(order) for order in orders]
