"""
Catalog Repository - point-in-time reads of rooms, technicians, services,
salespeople and commission rules.
"""

from typing import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session, joinedload

from spa_api.models import (
    CompanyCommissionRule,
    Room,
    Salesperson,
    ServiceItem,
    Technician,
    TechnicianService,
)


class CatalogRepository:
    """Read access to the catalog tables the order engine snapshots from."""

    def __init__(self, db: Session):
        self._db = db

    def get_room(self, room_id: int) -> Room | None:
        return self._db.get(Room, room_id)

    def get_service(self, service_id: int) -> ServiceItem | None:
        return self._db.get(ServiceItem, service_id)

    def get_technician(self, technician_id: int) -> Technician | None:
        return self._db.get(Technician, technician_id)

    def get_technician_service(
        self, technician_id: int, service_id: int
    ) -> TechnicianService | None:
        """The technician's price / commission / rule for one service."""
        return self._db.scalar(
            select(TechnicianService)
            .options(
                joinedload(TechnicianService.service),
                joinedload(TechnicianService.company_commission_rule),
            )
            .where(
                TechnicianService.technician_id == technician_id,
                TechnicianService.service_id == service_id,
            )
        )

    def get_salesperson(self, salesperson_id: int) -> Salesperson | None:
        return self._db.get(Salesperson, salesperson_id)

    def get_rules_by_ids(self, rule_ids: Iterable[int | None]) -> dict[int, CompanyCommissionRule]:
        """Rules keyed by id; ids that no longer exist are simply absent."""
        ids = {rule_id for rule_id in rule_ids if rule_id is not None}
        if not ids:
            return {}
        rules = self._db.execute(
            select(CompanyCommissionRule).where(CompanyCommissionRule.id.in_(ids))
        ).scalars().all()
        return {rule.id: rule for rule in rules}
