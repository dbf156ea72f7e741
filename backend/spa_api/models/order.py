"""
Order Models: Order, OrderItem, OrderSequence.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from sqlalchemy import (
    BigInteger,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.ext.orderinglist import ordering_list
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shared.config.constants import HandoverStatus, OrderItemStatus, OrderStatus
from .base import Base, BigIntPK, Money, TimestampMixin


class Order(TimestampMixin, Base):
    """
    A customer visit billed per service line.

    Room and technician names are snapshotted so the order keeps displaying
    correctly after the catalog changes; room_id may dangle once a room is
    deleted.
    """

    __tablename__ = "orders"

    # YYYYMMDDHHMMSS + 3-digit business-day sequence
    id: Mapped[str] = mapped_column(String(20), primary_key=True)
    room_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    room_name: Mapped[str] = mapped_column(Text, nullable=False, default="")
    customer_name: Mapped[Optional[str]] = mapped_column(Text)
    customer_phone: Mapped[Optional[str]] = mapped_column(String(32))
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=OrderStatus.IN_PROGRESS, index=True
    )
    handover_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=HandoverStatus.PENDING, index=True
    )
    total_amount: Mapped[float] = mapped_column(Money, nullable=False, default=0)
    # Written once at checkout
    received_amount: Mapped[Optional[float]] = mapped_column(Money)
    discount_rate: Mapped[float] = mapped_column(Float, nullable=False, default=1.0)
    notes: Mapped[Optional[str]] = mapped_column(Text)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    handover_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    items: Mapped[list["OrderItem"]] = relationship(
        back_populates="order",
        order_by="OrderItem.position",
        collection_class=ordering_list("position"),
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("ix_orders_status_created", "status", "created_at"),
    )

    @property
    def is_open(self) -> bool:
        return self.status == OrderStatus.IN_PROGRESS

    def __repr__(self) -> str:
        return f"<Order(id={self.id}, room_id={self.room_id}, status='{self.status}', items={len(self.items)})>"


class OrderItem(Base):
    """
    A single service line. Catalog values are copied in when the line is
    added; commission amounts are filled in at checkout and never recomputed.
    """

    __tablename__ = "order_items"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    order_id: Mapped[str] = mapped_column(
        String(20), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    service_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    service_name: Mapped[str] = mapped_column(Text, nullable=False, default="")
    technician_id: Mapped[Optional[int]] = mapped_column(BigInteger, index=True)
    technician_name: Mapped[str] = mapped_column(Text, nullable=False, default="")
    price: Mapped[float] = mapped_column(Money, nullable=False, default=0)
    technician_commission: Mapped[float] = mapped_column(Money, nullable=False, default=0)

    salesperson_id: Mapped[Optional[int]] = mapped_column(BigInteger)
    salesperson_name: Mapped[Optional[str]] = mapped_column(Text)
    salesperson_commission: Mapped[float] = mapped_column(Money, nullable=False, default=0)

    company_commission_rule_id: Mapped[Optional[int]] = mapped_column(BigInteger)
    company_commission_rule_name: Mapped[Optional[str]] = mapped_column(Text)
    company_commission_type: Mapped[Optional[str]] = mapped_column(String(20))
    company_commission_rate: Mapped[Optional[float]] = mapped_column(Float)
    company_commission_amount: Mapped[float] = mapped_column(Money, nullable=False, default=0)

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=OrderItemStatus.IN_PROGRESS
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    order: Mapped["Order"] = relationship(back_populates="items")

    def __repr__(self) -> str:
        return f"<OrderItem(id={self.id}, order_id={self.order_id}, service_id={self.service_id}, price={self.price})>"


class OrderSequence(Base):
    """Last issued order sequence number per business date."""

    __tablename__ = "order_sequence"

    business_date: Mapped[date] = mapped_column(Date, primary_key=True)
    last_value: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
