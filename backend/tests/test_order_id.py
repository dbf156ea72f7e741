"""
Tests for order id generation and the business-day sequence.
"""

from datetime import date, datetime, time, timezone

import pytest
from sqlalchemy.exc import IntegrityError

from shared.utils.exceptions import ConflictError
from shared.utils.schemas import CreateOrderRequest
from spa_api.models import Order, OrderSequence
from spa_api.services.domain import OrderService
from spa_api.services.domain.order_id import (
    business_date_for,
    format_order_id,
    parse_day_start,
)


class TestFormatting:

    def test_timestamp_followed_by_padded_sequence(self):
        moment = datetime(2024, 3, 1, 14, 5, 30)
        assert format_order_id(moment, 4) == "20240301140530004"

    def test_sequence_wider_than_padding_is_kept(self):
        moment = datetime(2024, 3, 1, 14, 5, 30)
        assert format_order_id(moment, 1234) == "202403011405301234"

    def test_parse_day_start(self):
        assert parse_day_start("08:00") == time(8, 0)
        assert parse_day_start("5:30") == time(5, 30)


class TestBusinessDate:

    def test_before_day_start_belongs_to_previous_day(self):
        moment = datetime(2024, 3, 2, 7, 59, 59)
        assert business_date_for(moment, time(8, 0)) == date(2024, 3, 1)

    def test_day_start_opens_a_new_business_day(self):
        moment = datetime(2024, 3, 2, 8, 0, 0)
        assert business_date_for(moment, time(8, 0)) == date(2024, 3, 2)

    def test_midnight_start_is_calendar_date(self):
        moment = datetime(2024, 3, 2, 0, 0, 1)
        assert business_date_for(moment, time(0, 0)) == date(2024, 3, 2)


class TestOrderIdGeneration:

    def test_fourth_order_of_the_day(self, service, seed_room):
        """Fourth order of 2024-03-01, created at 14:05:30 local time."""
        for _ in range(3):
            service.create_order(CreateOrderRequest(room_id=seed_room.id))

        order = service.create_order(CreateOrderRequest(room_id=seed_room.id))

        assert order.id == "20240301140530004"

    def test_created_at_is_utc(self, service, seed_room, clock):
        order = service.create_order(CreateOrderRequest(room_id=seed_room.id))

        assert order.created_at == clock.now
        assert order.created_at.utcoffset().total_seconds() == 0

    def test_sequence_continues_until_day_start(self, service, seed_room, clock):
        service.create_order(CreateOrderRequest(room_id=seed_room.id))

        # 07:59 local on 2024-03-02 still belongs to the 2024-03-01 business day
        clock.set(datetime(2024, 3, 1, 23, 59, 0, tzinfo=timezone.utc))
        late = service.create_order(CreateOrderRequest(room_id=seed_room.id))

        # 08:00 local opens the 2024-03-02 business day
        clock.set(datetime(2024, 3, 2, 0, 0, 0, tzinfo=timezone.utc))
        morning = service.create_order(CreateOrderRequest(room_id=seed_room.id))

        assert late.id == "20240302075900002"
        assert morning.id == "20240302080000001"

    def test_counter_is_kept_per_business_date(self, service, seed_room, db_session, clock):
        service.create_order(CreateOrderRequest(room_id=seed_room.id))
        service.create_order(CreateOrderRequest(room_id=seed_room.id))
        clock.set(datetime(2024, 3, 2, 1, 0, 0, tzinfo=timezone.utc))
        service.create_order(CreateOrderRequest(room_id=seed_room.id))

        counters = {
            row.business_date: row.last_value
            for row in db_session.query(OrderSequence).all()
        }
        assert counters == {date(2024, 3, 1): 2, date(2024, 3, 2): 1}


class TestIdCollision:

    def _occupy_id(self, db_session, room_id, order_id):
        """Insert an order directly, bypassing the sequence counter."""
        db_session.add(Order(id=order_id, room_id=room_id, room_name="Room 101"))
        db_session.commit()
        db_session.expunge_all()

    def test_clash_is_retried_with_a_fresh_id(self, service, db_session, seed_room):
        self._occupy_id(db_session, seed_room.id, "20240301140530001")

        order = service.create_order(CreateOrderRequest(room_id=seed_room.id))

        assert order.id == "20240301140530002"
        assert db_session.get(OrderSequence, date(2024, 3, 1)).last_value == 2

    def test_clash_after_last_retry_is_a_conflict(
        self, db_session, notifier, clock, seed_room
    ):
        self._occupy_id(db_session, seed_room.id, "20240301140530001")
        service = OrderService(db_session, notifier=notifier, clock=clock, max_id_retries=1)

        with pytest.raises(ConflictError) as exc_info:
            service.create_order(CreateOrderRequest(room_id=seed_room.id))

        assert exc_info.value.status_code == 409
        assert notifier.events == []
        # The failed attempt left no counter behind
        assert db_session.get(OrderSequence, date(2024, 3, 1)) is None

    def test_lost_counter_row_race_keeps_the_sequence_gapless(
        self, service, db_session, seed_room, monkeypatch
    ):
        repository = service._orders
        real_next_sequence = repository.next_sequence
        skips = []

        def racing_next_sequence(business_date, skip=0):
            skips.append(skip)
            if len(skips) == 1:
                # Another request inserted the day's counter row first
                raise IntegrityError("INSERT INTO order_sequence", {}, Exception("duplicate key"))
            return real_next_sequence(business_date, skip=skip)

        monkeypatch.setattr(repository, "next_sequence", racing_next_sequence)

        order = service.create_order(CreateOrderRequest(room_id=seed_room.id))

        assert skips == [0, 0]
        assert order.id == "20240301140530001"
        assert db_session.get(OrderSequence, date(2024, 3, 1)).last_value == 1
