"""
Tests for checkout and complete-and-checkout.

The default order line is the T-07 massage: price 100, technician
commission 20, company rule profit 50%.
"""

import pytest

from shared.config.constants import OrderStatus, RoomStatus, TechnicianStatus
from shared.utils.exceptions import InvalidStateError, NotFoundError, ValidationError
from shared.utils.schemas import CheckoutRequest, CreateOrderRequest, UpdateOrderRequest


class TestCheckoutCommissions:

    def test_full_price_with_percentage_salesperson(
        self, service, open_order, seed_percentage_salesperson
    ):
        order = service.checkout(
            open_order.id,
            CheckoutRequest(received_amount=100, salesperson_id=seed_percentage_salesperson.id),
        )

        item = order.items[0]
        assert order.discount_rate == pytest.approx(1.0)
        assert order.received_amount == pytest.approx(100)
        assert item.salesperson_id == seed_percentage_salesperson.id
        assert item.salesperson_name == "Lin"
        assert item.salesperson_commission == pytest.approx(10)
        # (100 - 20 - 10) * 50%
        assert item.company_commission_amount == pytest.approx(35)

    def test_half_price_with_percentage_salesperson(
        self, service, open_order, seed_percentage_salesperson
    ):
        order = service.checkout(
            open_order.id,
            CheckoutRequest(received_amount=50, salesperson_id=seed_percentage_salesperson.id),
        )

        item = order.items[0]
        assert order.discount_rate == pytest.approx(0.5)
        assert item.salesperson_commission == pytest.approx(5)
        # (50 - 20 - 5) * 50%
        assert item.company_commission_amount == pytest.approx(12.5)

    def test_fixed_salesperson_ignores_discount(self, service, open_order, seed_fixed_salesperson):
        order = service.checkout(
            open_order.id,
            CheckoutRequest(received_amount=50, salesperson_id=seed_fixed_salesperson.id),
        )

        item = order.items[0]
        assert item.salesperson_commission == 15
        # (50 - 20 - 15) * 50%
        assert item.company_commission_amount == pytest.approx(7.5)

    def test_without_salesperson(self, service, open_order):
        order = service.checkout(open_order.id, CheckoutRequest(received_amount=100))

        item = order.items[0]
        assert item.salesperson_id is None
        assert item.salesperson_commission == 0
        assert item.company_commission_amount == pytest.approx(40)

    def test_revenue_rule_line(
        self, service, open_order, seed_service, seed_second_technician, seed_percentage_salesperson
    ):
        service.add_item(open_order.id, seed_service.id, seed_second_technician.id)

        # 180 listed, 90 collected
        order = service.checkout(
            open_order.id,
            CheckoutRequest(received_amount=90, salesperson_id=seed_percentage_salesperson.id),
        )

        revenue_line = order.items[1]
        assert revenue_line.salesperson_commission == pytest.approx(4)
        assert revenue_line.company_commission_amount == pytest.approx(4)

    def test_deleted_rule_yields_zero(self, service, db_session, open_order, seed_profit_rule):
        db_session.delete(seed_profit_rule)
        db_session.commit()

        order = service.checkout(open_order.id, CheckoutRequest(received_amount=100))

        # The snapshot still names the rule, but it no longer exists
        assert order.items[0].company_commission_rule_name == "Profit 50%"
        assert order.items[0].company_commission_amount == 0

    def test_rule_is_read_at_checkout_time(self, service, db_session, open_order, seed_profit_rule):
        seed_profit_rule.commission_rate = 25
        db_session.commit()

        order = service.checkout(open_order.id, CheckoutRequest(received_amount=100))

        # (100 - 20 - 0) * 25%
        assert order.items[0].company_commission_amount == pytest.approx(20)


class TestCheckoutState:

    def test_status_is_unchanged(self, service, notifier, open_order, seed_technician):
        order = service.checkout(open_order.id, CheckoutRequest(received_amount=100))

        assert order.status == OrderStatus.IN_PROGRESS
        assert seed_technician.status == TechnicianStatus.BUSY
        assert notifier.types() == ["order-checkout"]

    def test_customer_name_is_updated(self, service, open_order):
        order = service.checkout(
            open_order.id, CheckoutRequest(received_amount=100, customer_name="Zhao")
        )
        assert order.customer_name == "Zhao"

    def test_customer_name_kept_when_omitted(self, service, open_order):
        order = service.checkout(open_order.id, CheckoutRequest(received_amount=100))
        assert order.customer_name == "Wang"

    def test_empty_order_is_undiscounted(self, service, seed_room):
        order = service.create_order(CreateOrderRequest(room_id=seed_room.id))

        order = service.checkout(order.id, CheckoutRequest(received_amount=30))

        assert order.discount_rate == 1.0
        assert order.received_amount == pytest.approx(30)

    def test_completed_order_can_be_settled(self, service, open_order):
        service.complete_order(open_order.id)

        order = service.checkout(open_order.id, CheckoutRequest(received_amount=80))

        assert order.status == OrderStatus.COMPLETED
        assert order.discount_rate == pytest.approx(0.8)

    def test_discount_rate_survives_later_edits(
        self, service, open_order, seed_percentage_salesperson
    ):
        service.checkout(
            open_order.id,
            CheckoutRequest(received_amount=50, salesperson_id=seed_percentage_salesperson.id),
        )

        order = service.update_order(open_order.id, UpdateOrderRequest(notes="paid by card"))

        assert order.discount_rate == pytest.approx(0.5)
        assert order.items[0].salesperson_commission == pytest.approx(5)
        assert order.items[0].company_commission_amount == pytest.approx(12.5)


class TestCheckoutErrors:

    @pytest.mark.parametrize("received_amount", [0, -10])
    def test_received_amount_must_be_positive(self, service, notifier, open_order, received_amount):
        with pytest.raises(ValidationError, match="received_amount"):
            service.checkout(open_order.id, CheckoutRequest(received_amount=received_amount))

        assert service.get_order(open_order.id).received_amount is None
        assert notifier.events == []

    def test_unknown_order(self, service):
        with pytest.raises(NotFoundError):
            service.checkout("missing", CheckoutRequest(received_amount=100))

    def test_unknown_salesperson_changes_nothing(self, service, notifier, open_order):
        with pytest.raises(NotFoundError, match="Salesperson"):
            service.checkout(
                open_order.id, CheckoutRequest(received_amount=50, salesperson_id=404)
            )

        order = service.get_order(open_order.id)
        assert order.received_amount is None
        assert order.discount_rate == 1.0
        assert order.items[0].company_commission_amount == 0
        assert notifier.events == []

    def test_cancelled_order_cannot_be_settled(self, service, open_order):
        service.cancel_order(open_order.id, "customer left")

        with pytest.raises(InvalidStateError):
            service.checkout(open_order.id, CheckoutRequest(received_amount=100))


class TestCompleteAndCheckout:

    def test_settles_and_completes(
        self, service, notifier, open_order, seed_room, seed_technician,
        seed_percentage_salesperson, clock,
    ):
        order = service.complete_and_checkout(
            open_order.id,
            CheckoutRequest(received_amount=100, salesperson_id=seed_percentage_salesperson.id),
        )

        assert order.status == OrderStatus.COMPLETED
        assert order.completed_at == clock.now
        assert order.items[0].company_commission_amount == pytest.approx(35)
        assert seed_room.status == RoomStatus.AVAILABLE
        assert seed_technician.status == TechnicianStatus.AVAILABLE
        assert notifier.types() == ["order-checkout", "order-status-updated"]

    def test_failure_leaves_order_open(self, service, open_order):
        with pytest.raises(NotFoundError):
            service.complete_and_checkout(
                open_order.id, CheckoutRequest(received_amount=100, salesperson_id=404)
            )

        assert service.get_order(open_order.id).status == OrderStatus.IN_PROGRESS
