"""
Order Domain Service.

Owns the order lifecycle: creation, edits, line management, checkout,
completion, cancellation and shift handover. Every public operation is one
transaction; change events are published only after it commits.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from fastapi import BackgroundTasks
from sqlalchemy.orm import Session

from shared.config.constants import (
    CANCEL_REASON_PREFIX,
    HandoverStatus,
    Limits,
    OrderItemStatus,
    OrderStatus,
)
from shared.config.logging import mask_phone, orders_logger as logger
from shared.config.settings import settings
from shared.infrastructure.events import (
    ORDER_CHECKOUT,
    ORDER_CREATED,
    ORDER_DELETED,
    ORDER_STATUS_UPDATED,
    ORDER_UPDATED,
)
from shared.utils.exceptions import (
    ConflictError,
    InvalidStateError,
    NotFoundError,
    OrderItemNotFoundError,
    OrderNotFoundError,
    ValidationError,
)
from shared.utils.schemas import (
    CheckoutRequest,
    CreateOrderRequest,
    OrderItemInput,
    UpdateOrderRequest,
)
from spa_api.models import Order, OrderItem
from spa_api.repositories.catalog import CatalogRepository
from spa_api.repositories.order import OrderFilters, OrderRepository
from spa_api.services.events.notifier import (
    ChangeNotifier,
    InMemoryChangeNotifier,
    order_payload,
)
from .commission import (
    calculate_discount_rate,
    calculate_item_company_commission,
    calculate_salesperson_commission,
)
from .order_id import Clock, OrderIdGenerator, utc_clock
from .resources import ResourceCoordinator


# Amounts are kept to the cent; anything closer is considered equal
AMOUNT_TOLERANCE = 0.005

# Plain fields copied as-is by update_order
_UPDATABLE_FIELDS = (
    "room_name",
    "customer_name",
    "customer_phone",
    "handover_at",
    "received_amount",
    "notes",
    "completed_at",
)


def items_total(items: list[Any]) -> float:
    return round(sum(float(item.price or 0) for item in items), 2)


class OrderService:
    """
    Domain service for Order operations.

    Usage:
        service = OrderService(db, notifier)
        order = service.create_order(CreateOrderRequest(room_id=3))
        service.add_item(order.id, service_id=1, technician_id=2)
        service.complete_and_checkout(order.id, CheckoutRequest(received_amount=180))
    """

    def __init__(
        self,
        db: Session,
        notifier: ChangeNotifier | None = None,
        clock: Clock | None = None,
        max_id_retries: int | None = None,
        background_tasks: BackgroundTasks | None = None,
    ):
        self._db = db
        self._orders = OrderRepository(db)
        self._catalog = CatalogRepository(db)
        self._resources = ResourceCoordinator(self._orders, self._catalog)
        self._clock = clock or utc_clock
        self._ids = OrderIdGenerator(self._orders, clock=self._clock)
        self._notifier = notifier if notifier is not None else InMemoryChangeNotifier()
        self._max_id_retries = max(1, max_id_retries or settings.order_id_max_retries)
        self._background_tasks = background_tasks

    # =========================================================================
    # Queries
    # =========================================================================

    def get_order(self, order_id: str) -> Order:
        order = self._orders.find_by_id(order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        return order

    def list_orders(
        self,
        status: str | None = None,
        handover_status: str | None = None,
        room_id: int | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[Order]:
        """Orders newest first, optionally filtered."""
        if status is not None:
            self._validate_status(status)
        if handover_status is not None:
            self._validate_handover_status(handover_status)

        filters = OrderFilters(
            status=status,
            handover_status=handover_status,
            room_id=room_id,
            limit=limit or Limits.DEFAULT_PAGE_SIZE,
            offset=offset,
        )
        return list(self._orders.find_all(filters))

    # =========================================================================
    # Create / update / delete
    # =========================================================================

    def create_order(self, request: CreateOrderRequest) -> Order:
        """
        Open a new order for a room.

        No room or technician status changes happen here. A clash on the
        generated id is retried with a fresh id.

        Raises:
            ValidationError: room_id missing, bad item status, total mismatch
            ConflictError: no free id after all retries
        """
        if request.room_id is None:
            raise ValidationError("room_id is required", field="room_id")
        for item in request.items:
            self._validate_item_status(item.status)
        total_amount = self._resolve_total(request.items, request.total_amount)

        room_name = request.room_name
        if room_name is None:
            room = self._catalog.get_room(request.room_id)
            room_name = room.name if room is not None else ""

        attempt = 0
        skip = 0
        while True:
            attempt += 1
            order_id = None
            try:
                with self._orders.transaction("create_order", room_id=request.room_id):
                    order_id, local_moment = self._ids.next_id(skip=skip)
                    created_at = local_moment.astimezone(timezone.utc)
                    order = Order(
                        id=order_id,
                        room_id=request.room_id,
                        room_name=room_name,
                        customer_name=request.customer_name,
                        customer_phone=request.customer_phone,
                        status=OrderStatus.IN_PROGRESS,
                        handover_status=HandoverStatus.PENDING,
                        total_amount=total_amount,
                        received_amount=request.received_amount,
                        discount_rate=1.0,
                        notes=request.notes,
                        created_at=created_at,
                        updated_at=created_at,
                    )
                    for item in request.items:
                        order.items.append(self._build_item(item))
                    self._orders.add(order)
                break
            except ConflictError:
                if attempt >= self._max_id_retries:
                    raise
                # Only a taken id moves the sequence on; a lost race for the
                # day's counter row is retried with the same number
                id_taken = order_id is not None and self._orders.id_exists(order_id)
                if id_taken:
                    skip += 1
                logger.warning(
                    "Order id collision, retrying",
                    attempt=attempt,
                    max_retries=self._max_id_retries,
                    id_taken=id_taken,
                )

        logger.info(
            "Order created",
            order_id=order.id,
            room_id=order.room_id,
            items_count=len(order.items),
            total_amount=order.total_amount,
            customer_phone=mask_phone(order.customer_phone),
        )
        self._notify(ORDER_CREATED, order)
        return order

    def update_order(self, order_id: str, request: UpdateOrderRequest) -> Order:
        """
        Apply a partial update; only fields present in the request change.

        Supplying items replaces the whole item list verbatim, including any
        commission fields, which are never recomputed here. The total is
        derived from the new items unless supplied, and must match them.
        """
        fields = request.model_fields_set
        if "items" in fields and request.items is None:
            raise ValidationError("items must be a list", field="items")
        if "room_id" in fields and request.room_id is None:
            raise ValidationError("room_id cannot be empty", field="room_id")
        order = self.get_order(order_id)

        room_name = None
        if "room_id" in fields and "room_name" not in fields and request.room_id != order.room_id:
            room = self._catalog.get_room(request.room_id)
            room_name = room.name if room is not None else ""

        with self._orders.transaction("update_order", order_id=order_id):
            if "room_id" in fields:
                order.room_id = request.room_id
                if room_name is not None:
                    order.room_name = room_name
            if "status" in fields:
                self._validate_status(request.status)
                order.status = request.status
            if "handover_status" in fields:
                self._validate_handover_status(request.handover_status)
                order.handover_status = request.handover_status

            for field in _UPDATABLE_FIELDS:
                if field in fields:
                    setattr(order, field, getattr(request, field))
            if order.room_name is None:
                order.room_name = ""

            items_supplied = "items" in fields
            if items_supplied:
                for item in request.items:
                    self._validate_item_status(item.status)
                self._orders.replace_items(order, [self._build_item(i) for i in request.items])

            if "total_amount" in fields and request.total_amount is not None:
                order.total_amount = self._resolve_total(order.items, request.total_amount)
            elif items_supplied:
                order.total_amount = items_total(order.items)

        logger.info(
            "Order updated",
            order_id=order_id,
            fields=sorted(fields),
            items_replaced="items" in fields,
        )
        self._notify(ORDER_UPDATED, order)
        return order

    def update_order_status(self, order_id: str, status: str) -> Order:
        """
        Set the order status directly.

        Only the value is checked; any transition is allowed. Moving to
        completed stamps completed_at unless already set.
        """
        self._validate_status(status)
        order = self.get_order(order_id)

        with self._orders.transaction("update_order_status", order_id=order_id):
            previous = order.status
            order.status = status
            if status == OrderStatus.COMPLETED and order.completed_at is None:
                order.completed_at = self._now()

        logger.info("Order status updated", order_id=order_id, from_status=previous, to_status=status)
        self._notify(ORDER_STATUS_UPDATED, order)
        return order

    def delete_order(self, order_id: str) -> None:
        """Hard delete. Rooms and technicians are left untouched."""
        order = self.get_order(order_id)
        with self._orders.transaction("delete_order", order_id=order_id):
            self._orders.delete(order)

        logger.info("Order deleted", order_id=order_id)
        self._publish(ORDER_DELETED, {"id": order_id})

    # =========================================================================
    # Line management
    # =========================================================================

    def add_item(self, order_id: str, service_id: int, technician_id: int) -> Order:
        """
        Append a service line performed by a technician.

        Price, technician commission and company rule are copied from the
        technician's assignment for that service. The technician becomes busy
        and the room occupied.
        """
        order = self.get_order(order_id)
        self._require_open(order)

        assignment = self._catalog.get_technician_service(technician_id, service_id)
        if assignment is None:
            raise NotFoundError(
                "Technician service",
                service_id,
                technician_id=technician_id,
            )
        rule = assignment.company_commission_rule

        with self._orders.transaction("add_item", order_id=order_id):
            order.items.append(
                OrderItem(
                    service_id=service_id,
                    service_name=assignment.service.name,
                    technician_id=technician_id,
                    technician_name=assignment.technician.employee_id,
                    price=assignment.price,
                    technician_commission=assignment.commission,
                    company_commission_rule_id=rule.id if rule else None,
                    company_commission_rule_name=rule.name if rule else None,
                    company_commission_type=rule.commission_type if rule else None,
                    company_commission_rate=rule.commission_rate if rule else None,
                    status=OrderItemStatus.IN_PROGRESS,
                )
            )
            order.total_amount = items_total(order.items)
            self._resources.occupy(order, technician_id)

        logger.info(
            "Order item added",
            order_id=order_id,
            service_id=service_id,
            technician_id=technician_id,
            total_amount=order.total_amount,
        )
        self._notify(ORDER_UPDATED, order)
        return order

    def remove_item(self, order_id: str, item_id: int) -> Order:
        """
        Remove one line. Removing the last line cancels the whole order and
        releases its room and technicians.
        """
        order = self.get_order(order_id)
        self._require_open(order)
        item = self._find_item(order, item_id)
        technician_id = item.technician_id

        with self._orders.transaction("remove_item", order_id=order_id, item_id=item_id):
            self._orders.remove_item(order, item)
            order.total_amount = items_total(order.items)
            cancelled = not order.items
            if cancelled:
                order.status = OrderStatus.CANCELLED
            self._resources.release_technicians([technician_id])
            if cancelled:
                self._resources.release_room(order.room_id)

        if cancelled:
            logger.info("Last item removed, order cancelled", order_id=order_id, item_id=item_id)
            self._notify(ORDER_STATUS_UPDATED, order)
        else:
            logger.info("Order item removed", order_id=order_id, item_id=item_id)
            self._notify(ORDER_UPDATED, order)
        return order

    def complete_item(self, order_id: str, item_id: int) -> Order:
        """
        Mark one line finished and free its technician. When every line is
        finished the order itself completes.
        """
        order = self.get_order(order_id)
        self._require_open(order)
        item = self._find_item(order, item_id)

        with self._orders.transaction("complete_item", order_id=order_id, item_id=item_id):
            now = self._now()
            item.status = OrderItemStatus.COMPLETED
            if item.completed_at is None:
                item.completed_at = now

            order_completed = all(i.status == OrderItemStatus.COMPLETED for i in order.items)
            if order_completed:
                order.status = OrderStatus.COMPLETED
                order.completed_at = now
                self._resources.release_order(order, delete_temporary_room=True)
            else:
                self._resources.release_technicians([item.technician_id])

        logger.info(
            "Order item completed",
            order_id=order_id,
            item_id=item_id,
            order_completed=order_completed,
        )
        self._notify(ORDER_UPDATED, order)
        if order_completed:
            self._notify(ORDER_STATUS_UPDATED, order)
        return order

    # =========================================================================
    # Status transitions with side effects
    # =========================================================================

    def cancel_order(self, order_id: str, reason: str) -> Order:
        """Cancel an open order. The reason is mandatory and appended to notes."""
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError("A cancel reason is required", field="reason")

        order = self.get_order(order_id)
        self._require_open(order)

        with self._orders.transaction("cancel_order", order_id=order_id):
            order.status = OrderStatus.CANCELLED
            line = f"{CANCEL_REASON_PREFIX}{reason}"
            order.notes = f"{order.notes}\n{line}" if order.notes else line
            self._resources.release_order(order, delete_temporary_room=True)

        logger.info("Order cancelled", order_id=order_id)
        self._notify(ORDER_STATUS_UPDATED, order)
        return order

    def complete_order(self, order_id: str) -> Order:
        """Complete an open order, freeing its technicians and room (temporary rooms are deleted)."""
        order = self.get_order(order_id)
        self._require_open(order)

        with self._orders.transaction("complete_order", order_id=order_id):
            self._mark_completed(order)

        logger.info("Order completed", order_id=order_id)
        self._notify(ORDER_STATUS_UPDATED, order)
        return order

    def handover(self, order_ids: list[str] | None = None) -> list[Order]:
        """
        Mark orders handed over at shift change.

        With no ids, every order still pending handover is included.
        """
        now = self._now()
        if order_ids:
            unique_ids = list(dict.fromkeys(order_ids))
            orders = self._orders.find_by_ids(unique_ids)
            found = {order.id for order in orders}
            missing = [order_id for order_id in unique_ids if order_id not in found]
            if missing:
                raise OrderNotFoundError(missing[0], missing_ids=missing)
        else:
            orders = self._orders.find_by_handover_status(HandoverStatus.PENDING)

        if not orders:
            return []

        with self._orders.transaction("handover", orders_count=len(orders)):
            for order in orders:
                order.handover_status = HandoverStatus.HANDED_OVER
                order.handover_at = now

        logger.info("Orders handed over", orders_count=len(orders))
        for order in orders:
            self._notify(ORDER_UPDATED, order)
        return orders

    # =========================================================================
    # Checkout
    # =========================================================================

    def checkout(self, order_id: str, request: CheckoutRequest) -> Order:
        """
        Settle an order without changing its status.

        Stamps received_amount, discount_rate and per-line salesperson and
        company commissions in one transaction.
        """
        order = self._load_for_checkout(order_id, request)

        with self._orders.transaction("checkout", order_id=order_id):
            self._apply_checkout(order, request)

        self._log_checkout(order, completed=False)
        self._notify(ORDER_CHECKOUT, order)
        return order

    def complete_and_checkout(self, order_id: str, request: CheckoutRequest) -> Order:
        """Checkout and completion as a single transaction."""
        order = self._load_for_checkout(order_id, request)

        with self._orders.transaction("complete_and_checkout", order_id=order_id):
            self._apply_checkout(order, request)
            self._mark_completed(order)

        self._log_checkout(order, completed=True)
        self._notify(ORDER_CHECKOUT, order)
        self._notify(ORDER_STATUS_UPDATED, order)
        return order

    def _load_for_checkout(self, order_id: str, request: CheckoutRequest) -> Order:
        if request.received_amount is None or request.received_amount <= 0:
            raise ValidationError(
                "received_amount must be greater than 0",
                field="received_amount",
                value=request.received_amount,
            )
        order = self.get_order(order_id)
        if order.status == OrderStatus.CANCELLED:
            raise InvalidStateError(
                "Order",
                order.status,
                [OrderStatus.IN_PROGRESS, OrderStatus.COMPLETED],
                order_id=order_id,
            )
        return order

    def _apply_checkout(self, order: Order, request: CheckoutRequest) -> None:
        """
        Commission pipeline, per line and in this order: salesperson
        commission, then company commission computed on the line that
        already carries it (profit mode is net of the salesperson's cut).
        Rules are looked up now; a rule that no longer exists yields 0.
        """
        salesperson = None
        if request.salesperson_id is not None:
            salesperson = self._catalog.get_salesperson(request.salesperson_id)
            if salesperson is None:
                raise NotFoundError("Salesperson", request.salesperson_id)

        discount_rate = calculate_discount_rate(request.received_amount, order.total_amount)
        rules = self._catalog.get_rules_by_ids(
            item.company_commission_rule_id for item in order.items
        )

        for item in order.items:
            item.salesperson_id = salesperson.id if salesperson else None
            item.salesperson_name = salesperson.name if salesperson else None
            item.salesperson_commission = calculate_salesperson_commission(
                item, salesperson, discount_rate
            )
            item.company_commission_amount = calculate_item_company_commission(
                item, discount_rate, rules.get(item.company_commission_rule_id)
            )

        order.received_amount = request.received_amount
        order.discount_rate = discount_rate
        if request.customer_name is not None:
            order.customer_name = request.customer_name

    def _log_checkout(self, order: Order, completed: bool) -> None:
        logger.info(
            "Order checked out",
            order_id=order.id,
            total_amount=order.total_amount,
            received_amount=order.received_amount,
            discount_rate=round(order.discount_rate, 4),
            salesperson_id=order.items[0].salesperson_id if order.items else None,
            completed=completed,
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    def _now(self) -> datetime:
        now = self._clock()
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        return now

    def _mark_completed(self, order: Order) -> None:
        order.status = OrderStatus.COMPLETED
        if order.completed_at is None:
            order.completed_at = self._now()
        self._resources.release_order(order, delete_temporary_room=True)

    def _require_open(self, order: Order) -> None:
        if not order.is_open:
            raise InvalidStateError(
                "Order",
                order.status,
                [OrderStatus.IN_PROGRESS],
                order_id=order.id,
            )

    def _find_item(self, order: Order, item_id: int) -> OrderItem:
        for item in order.items:
            if item.id == item_id:
                return item
        raise OrderItemNotFoundError(item_id, order_id=order.id)

    def _build_item(self, data: OrderItemInput) -> OrderItem:
        return OrderItem(**data.model_dump())

    def _resolve_total(self, items: list[Any], total_amount: float | None) -> float:
        """Derive the total from the items, or check a supplied one against them."""
        derived = items_total(items)
        if total_amount is None:
            return derived
        if abs(total_amount - derived) > AMOUNT_TOLERANCE:
            raise ValidationError(
                f"total_amount {total_amount} does not match the sum of item prices {derived}",
                field="total_amount",
                total_amount=total_amount,
                items_total=derived,
            )
        return derived

    def _validate_status(self, status: str | None) -> None:
        if status not in OrderStatus.ALL:
            raise ValidationError(
                f"Invalid order status '{status}'. Expected one of: {', '.join(OrderStatus.ALL)}",
                field="status",
                value=status,
            )

    def _validate_handover_status(self, handover_status: str | None) -> None:
        if handover_status not in HandoverStatus.ALL:
            raise ValidationError(
                f"Invalid handover status '{handover_status}'. Expected one of: {', '.join(HandoverStatus.ALL)}",
                field="handover_status",
                value=handover_status,
            )

    def _validate_item_status(self, status: str) -> None:
        if status not in OrderItemStatus.ALL:
            raise ValidationError(
                f"Invalid item status '{status}'. Expected one of: {', '.join(OrderItemStatus.ALL)}",
                field="status",
                value=status,
            )

    def _notify(self, event_type: str, order: Order) -> None:
        self._publish(event_type, order_payload(order))

    def _publish(self, event_type: str, data: dict[str, Any]) -> None:
        """
        Hand a committed change to the notifier.

        Inside a request the delivery runs as a background task after the
        response is sent, so a slow or unreachable broker never delays it.
        The payload is built now, while the session is still open.
        """
        if self._background_tasks is not None:
            self._background_tasks.add_task(self._deliver, event_type, data)
        else:
            self._deliver(event_type, data)

    def _deliver(self, event_type: str, data: dict[str, Any]) -> None:
        """Never raises."""
        try:
            self._notifier.publish(event_type, data)
        except Exception as e:
            logger.error("Change notification failed", event_type=event_type, error=str(e))
