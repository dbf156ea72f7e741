"""
FastAPI dependencies wiring services to the request's session.
"""

from fastapi import BackgroundTasks, Depends
from sqlalchemy.orm import Session

from shared.infrastructure.db import get_db
from spa_api.services.domain import OrderService
from spa_api.services.events import ChangeNotifier, get_change_notifier


def get_order_service(
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    notifier: ChangeNotifier = Depends(get_change_notifier),
) -> OrderService:
    """
    Order service bound to the request session.

    Change events are delivered by the request's background tasks, after
    the response has been sent. Tests swap the notifier via
    app.dependency_overrides[get_change_notifier].
    """
    return OrderService(db, notifier=notifier, background_tasks=background_tasks)
