"""
Order Repository - Data access for orders and their items.
Items are always eager loaded in insertion order.
"""

from dataclasses import dataclass
from datetime import date
from typing import Iterable

from sqlalchemy import Select, exists, select
from sqlalchemy.orm import selectinload

from shared.config.constants import OrderItemStatus, OrderStatus
from spa_api.models import Order, OrderItem, OrderSequence
from .base import BaseRepository, RepositoryFilters


@dataclass
class OrderFilters(RepositoryFilters):
    """Filters specific to orders."""

    status: str | None = None
    handover_status: str | None = None
    room_id: int | None = None


class OrderRepository(BaseRepository[Order]):
    """
    Repository for Order aggregates.

    Mutating methods only stage changes in the session; callers wrap them
    in transaction() so an order and its items are written as one unit.
    """

    @property
    def model(self) -> type[Order]:
        return Order

    def _base_query(self) -> Select:
        return (
            select(Order)
            .options(selectinload(Order.items))
            .order_by(Order.created_at.desc(), Order.id.desc())
        )

    def _apply_filters(self, query: Select, filters: RepositoryFilters) -> Select:
        if not isinstance(filters, OrderFilters):
            filters = OrderFilters(limit=filters.limit, offset=filters.offset)

        if filters.status:
            query = query.where(Order.status == filters.status)
        if filters.handover_status:
            query = query.where(Order.handover_status == filters.handover_status)
        if filters.room_id is not None:
            query = query.where(Order.room_id == filters.room_id)
        return query

    def find_by_ids(self, order_ids: Iterable[str]) -> list[Order]:
        order_ids = list(order_ids)
        if not order_ids:
            return []
        query = self._base_query().where(Order.id.in_(order_ids))
        return list(self._db.execute(query).scalars().unique().all())

    def find_by_handover_status(self, handover_status: str) -> list[Order]:
        """Every order with the given handover status, unpaginated."""
        query = self._base_query().where(Order.handover_status == handover_status)
        return list(self._db.execute(query).scalars().unique().all())

    def id_exists(self, order_id: str) -> bool:
        return bool(self._db.scalar(select(exists().where(Order.id == order_id))))

    # -------------------------------------------------------------------------
    # Mutations (staged; committed by transaction())
    # -------------------------------------------------------------------------

    def next_sequence(self, business_date: date, skip: int = 0) -> int:
        """
        Reserve the next order sequence number for a business date.

        `skip` jumps over numbers already known to clash with existing ids.
        The counter row is locked for the rest of the transaction. Two
        transactions racing to create the first row of a day end in a
        uniqueness violation, which surfaces as ConflictError; the loser
        retries without skipping.
        """
        step = 1 + max(skip, 0)
        counter = self._db.scalar(
            select(OrderSequence)
            .where(OrderSequence.business_date == business_date)
            .with_for_update()
        )
        if counter is None:
            counter = OrderSequence(business_date=business_date, last_value=step)
            self._db.add(counter)
        else:
            counter.last_value += step
        self._db.flush()
        return counter.last_value

    def add(self, order: Order) -> Order:
        self._db.add(order)
        self._db.flush()
        return order

    def replace_items(self, order: Order, items: list[OrderItem]) -> None:
        """Delete every existing line of the order and insert the new list."""
        order.items.clear()
        self._db.flush()
        for item in items:
            order.items.append(item)
        self._db.flush()

    def remove_item(self, order: Order, item: OrderItem) -> None:
        order.items.remove(item)
        order.items.reorder()
        self._db.flush()

    def delete(self, order: Order) -> None:
        self._db.delete(order)
        self._db.flush()

    # -------------------------------------------------------------------------
    # Resource usage queries
    # -------------------------------------------------------------------------

    def room_has_open_orders(self, room_id: int) -> bool:
        """True if any open order still occupies the room."""
        query = select(
            exists().where(
                Order.room_id == room_id,
                Order.status == OrderStatus.IN_PROGRESS,
            )
        )
        return bool(self._db.scalar(query))

    def technician_has_open_work(self, technician_id: int) -> bool:
        """True if the technician has an unfinished line on any open order."""
        query = select(
            exists()
            .where(OrderItem.order_id == Order.id)
            .where(
                OrderItem.technician_id == technician_id,
                OrderItem.status != OrderItemStatus.COMPLETED,
                Order.status == OrderStatus.IN_PROGRESS,
            )
        )
        return bool(self._db.scalar(query))
