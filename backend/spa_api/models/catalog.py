"""
Catalog Models: Room, ServiceItem, Technician, TechnicianService,
Salesperson, CompanyCommissionRule.

These tables are maintained by the catalog administration screens; the
order engine only reads them for snapshots and flips room / technician
status.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import Boolean, Float, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shared.config.constants import (
    CompanyCommissionType,
    RoomStatus,
    SalespersonCommissionType,
    TechnicianStatus,
)
from .base import Base, BigIntPK, Money, TimestampMixin


class Room(TimestampMixin, Base):
    __tablename__ = "rooms"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=RoomStatus.AVAILABLE
    )
    # Temporary rooms are created ad hoc and removed when their order completes
    is_temporary: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class ServiceItem(TimestampMixin, Base):
    __tablename__ = "service_items"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)


class CompanyCommissionRule(TimestampMixin, Base):
    """How much of a service line the company keeps."""

    __tablename__ = "company_commission_rules"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    commission_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default=CompanyCommissionType.NONE
    )
    # Percent; ignored for type "none"
    commission_rate: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class Technician(TimestampMixin, Base):
    __tablename__ = "technicians"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    # Display name shown to staff and snapshotted into order lines
    employee_id: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=TechnicianStatus.AVAILABLE
    )

    services: Mapped[list["TechnicianService"]] = relationship(
        back_populates="technician", cascade="all, delete-orphan"
    )


class TechnicianService(Base):
    """Price and commissions a technician charges for one service."""

    __tablename__ = "technician_services"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    technician_id: Mapped[int] = mapped_column(
        ForeignKey("technicians.id", ondelete="CASCADE"), nullable=False, index=True
    )
    service_id: Mapped[int] = mapped_column(
        ForeignKey("service_items.id", ondelete="CASCADE"), nullable=False
    )
    price: Mapped[float] = mapped_column(Money, nullable=False, default=0)
    commission: Mapped[float] = mapped_column(Money, nullable=False, default=0)
    company_commission_rule_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("company_commission_rules.id", ondelete="SET NULL")
    )

    technician: Mapped["Technician"] = relationship(back_populates="services")
    service: Mapped["ServiceItem"] = relationship()
    company_commission_rule: Mapped[Optional["CompanyCommissionRule"]] = relationship()

    __table_args__ = (
        UniqueConstraint("technician_id", "service_id", name="uq_technician_service"),
    )


class Salesperson(TimestampMixin, Base):
    __tablename__ = "salespeople"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    commission_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default=SalespersonCommissionType.FIXED
    )
    # Flat amount per line for "fixed", percent for "percentage"
    commission_rate: Mapped[float] = mapped_column(Float, nullable=False, default=0)
