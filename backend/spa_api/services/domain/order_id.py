"""
Order id generation.

Ids read as the local timestamp of creation followed by the order's
position within its business day, e.g. 20240301140530004 for the fourth
order of the 2024-03-01 business day created at 14:05:30.

A business day starts at settings.business_day_start in
settings.business_timezone: with the default 08:00, an order placed at
03:00 still belongs to the previous day's sequence.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from shared.config.constants import OrderNumbering
from shared.config.settings import settings
from spa_api.repositories.order import OrderRepository

Clock = Callable[[], datetime]


def utc_clock() -> datetime:
    return datetime.now(timezone.utc)


def parse_day_start(value: str) -> time:
    """Parse an "HH:MM" business day start."""
    hour, minute = (int(part) for part in value.split(":"))
    return time(hour=hour, minute=minute)


def business_date_for(local_moment: datetime, day_start: time) -> date:
    """The business date a local moment belongs to."""
    if local_moment.time() >= day_start:
        return local_moment.date()
    return local_moment.date() - timedelta(days=1)


def format_order_id(local_moment: datetime, sequence: int) -> str:
    timestamp = local_moment.strftime(OrderNumbering.TIMESTAMP_FORMAT)
    return f"{timestamp}{sequence:0{OrderNumbering.SEQUENCE_WIDTH}d}"


class OrderIdGenerator:
    """
    Issues order ids from the per-business-date counter.

    next_id() must run inside the transaction that inserts the order so the
    counter increment and the order row commit or roll back together.
    """

    def __init__(
        self,
        repository: OrderRepository,
        clock: Clock | None = None,
        timezone_name: str | None = None,
        day_start: str | None = None,
    ):
        self._repository = repository
        self._clock = clock or utc_clock
        self._tz = ZoneInfo(timezone_name or settings.business_timezone)
        self._day_start = parse_day_start(day_start or settings.business_day_start)

    def local_now(self) -> datetime:
        now = self._clock()
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        return now.astimezone(self._tz)

    def business_date(self, local_moment: datetime) -> date:
        return business_date_for(local_moment, self._day_start)

    def next_id(self, skip: int = 0) -> tuple[str, datetime]:
        """
        Reserve the next id. Returns (order_id, local creation time).

        On a retry, pass the number of ids found already taken as `skip` so
        those sequence numbers are not handed out again.
        """
        local_moment = self.local_now()
        sequence = self._repository.next_sequence(
            self.business_date(local_moment), skip=skip
        )
        return format_order_id(local_moment, sequence), local_moment
