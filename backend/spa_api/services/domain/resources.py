"""
Room and technician status side effects of the order lifecycle.

Changes are staged in the caller's session and committed with the order
mutation that caused them.
"""

from __future__ import annotations

from collections.abc import Iterable

from shared.config.constants import RoomStatus, TechnicianStatus
from shared.config.logging import get_logger
from spa_api.models import Order
from spa_api.repositories.catalog import CatalogRepository
from spa_api.repositories.order import OrderRepository

logger = get_logger(__name__)


class ResourceCoordinator:
    """
    Marks rooms occupied / technicians busy while they have open work and
    releases them afterwards.

    A resource is only released when no other open order still uses it, so
    two orders sharing a technician do not free each other's resources.
    """

    def __init__(self, orders: OrderRepository, catalog: CatalogRepository):
        self._orders = orders
        self._catalog = catalog

    def occupy(self, order: Order, technician_id: int | None = None) -> None:
        room = self._catalog.get_room(order.room_id)
        if room is not None and room.status != RoomStatus.OCCUPIED:
            room.status = RoomStatus.OCCUPIED
            logger.debug("Room occupied", room_id=room.id, order_id=order.id)

        if technician_id is not None:
            technician = self._catalog.get_technician(technician_id)
            if technician is not None and technician.status != TechnicianStatus.BUSY:
                technician.status = TechnicianStatus.BUSY
                logger.debug("Technician busy", technician_id=technician_id, order_id=order.id)

    def release_technicians(self, technician_ids: Iterable[int | None]) -> list[int]:
        """Free each technician without other open work. Returns the freed ids."""
        self._orders.db.flush()
        freed = []
        for technician_id in dict.fromkeys(t for t in technician_ids if t is not None):
            if self._orders.technician_has_open_work(technician_id):
                continue
            technician = self._catalog.get_technician(technician_id)
            if technician is None:
                continue
            technician.status = TechnicianStatus.AVAILABLE
            freed.append(technician_id)
        if freed:
            logger.debug("Technicians released", technician_ids=freed)
        return freed

    def release_room(self, room_id: int, delete_temporary: bool = False) -> None:
        """
        Free the room unless another open order still uses it.

        With delete_temporary, a temporary room is removed instead of freed.
        """
        self._orders.db.flush()
        if self._orders.room_has_open_orders(room_id):
            return
        room = self._catalog.get_room(room_id)
        if room is None:
            return
        if delete_temporary and room.is_temporary:
            self._orders.db.delete(room)
            logger.info("Temporary room deleted", room_id=room_id)
        else:
            room.status = RoomStatus.AVAILABLE
            logger.debug("Room released", room_id=room_id)

    def release_order(self, order: Order, delete_temporary_room: bool = False) -> None:
        """Release everything a closed order was holding."""
        self.release_technicians(item.technician_id for item in order.items)
        self.release_room(order.room_id, delete_temporary=delete_temporary_room)
