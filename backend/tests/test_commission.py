"""
Tests for the commission calculator.

Pure functions only; lines, salespeople and rules are plain namespaces.
"""

from types import SimpleNamespace

import pytest

from shared.config.constants import CompanyCommissionType, SalespersonCommissionType
from spa_api.services.domain.commission import (
    calculate_discount_rate,
    calculate_item_company_commission,
    calculate_order_profit,
    calculate_salesperson_commission,
    calculate_total_company_commission,
    calculate_total_salesperson_commission,
    calculate_total_technician_commission,
)


def make_line(price=100.0, technician_commission=20.0, salesperson_commission=0.0, rule_id=None):
    return SimpleNamespace(
        price=price,
        technician_commission=technician_commission,
        salesperson_commission=salesperson_commission,
        company_commission_rule_id=rule_id,
        company_commission_amount=0.0,
    )


def make_rule(rule_id=1, commission_type=CompanyCommissionType.PROFIT, rate=50.0):
    return SimpleNamespace(id=rule_id, commission_type=commission_type, commission_rate=rate)


PERCENT_10 = SimpleNamespace(
    commission_type=SalespersonCommissionType.PERCENTAGE, commission_rate=10.0
)
FIXED_15 = SimpleNamespace(commission_type=SalespersonCommissionType.FIXED, commission_rate=15.0)


class TestDiscountRate:

    def test_ratio_of_received_to_total(self):
        assert calculate_discount_rate(50, 100) == 0.5
        assert calculate_discount_rate(120, 100) == 1.2

    def test_zero_total_counts_as_full_price(self):
        """An empty order must not divide by zero."""
        assert calculate_discount_rate(30, 0) == 1.0


class TestSalespersonCommission:

    def test_no_salesperson_earns_nothing(self):
        assert calculate_salesperson_commission(make_line(), None, 0.5) == 0

    def test_percentage_full_price(self):
        """100 at 10% with nothing discounted pays 10."""
        assert calculate_salesperson_commission(make_line(), PERCENT_10, 1.0) == pytest.approx(10)

    def test_percentage_scales_with_discount(self):
        """100 at 10% collected at half price pays 5."""
        assert calculate_salesperson_commission(make_line(), PERCENT_10, 0.5) == pytest.approx(5)

    @pytest.mark.parametrize("discount_rate", [0.1, 0.5, 1.0, 1.3])
    def test_fixed_ignores_discount(self, discount_rate):
        """A fixed commission is the configured amount per line, always."""
        assert calculate_salesperson_commission(make_line(), FIXED_15, discount_rate) == 15


class TestCompanyCommission:

    def test_profit_mode_full_price(self):
        """(100 - 20 - 10) * 50% = 35."""
        line = make_line(salesperson_commission=10)
        assert calculate_item_company_commission(line, 1.0, make_rule()) == pytest.approx(35)

    def test_profit_mode_half_price(self):
        """(50 - 20 - 5) * 50% = 12.5."""
        line = make_line(salesperson_commission=5)
        assert calculate_item_company_commission(line, 0.5, make_rule()) == pytest.approx(12.5)

    def test_revenue_mode_uses_collected_amount(self):
        rule = make_rule(commission_type=CompanyCommissionType.REVENUE, rate=10)
        line = make_line(salesperson_commission=10)
        assert calculate_item_company_commission(line, 0.5, rule) == pytest.approx(5)

    def test_none_mode_is_zero(self):
        rule = make_rule(commission_type=CompanyCommissionType.NONE, rate=90)
        assert calculate_item_company_commission(make_line(), 1.0, rule) == 0

    def test_missing_rule_is_zero(self):
        assert calculate_item_company_commission(make_line(rule_id=99), 1.0, None) == 0

    def test_profit_never_exceeds_revenue_for_same_rate(self):
        line = make_line(salesperson_commission=7)
        profit = calculate_item_company_commission(line, 0.8, make_rule(rate=30))
        revenue = calculate_item_company_commission(
            line, 0.8, make_rule(commission_type=CompanyCommissionType.REVENUE, rate=30)
        )
        assert profit <= revenue

    def test_profit_mode_goes_negative_when_payouts_exceed_collection(self):
        """Deep discounts are not clamped; the company absorbs the loss."""
        line = make_line(salesperson_commission=15)
        assert calculate_item_company_commission(line, 0.2, make_rule()) == pytest.approx(-7.5)


class TestTotals:

    def test_sums_over_lines(self):
        lines = [
            make_line(technician_commission=20, salesperson_commission=10, rule_id=1),
            make_line(price=80, technician_commission=15, salesperson_commission=8, rule_id=2),
        ]
        rules = {
            1: make_rule(rule_id=1),
            2: make_rule(rule_id=2, commission_type=CompanyCommissionType.REVENUE, rate=10),
        }

        assert calculate_total_technician_commission(lines) == pytest.approx(35)
        assert calculate_total_salesperson_commission(lines) == pytest.approx(18)
        # (100 - 20 - 10) * 50% + 80 * 10%
        assert calculate_total_company_commission(lines, 1.0, rules) == pytest.approx(43)

    def test_rules_may_be_given_as_a_list(self):
        lines = [make_line(salesperson_commission=10, rule_id=1)]
        assert calculate_total_company_commission(lines, 1.0, [make_rule()]) == pytest.approx(35)

    def test_unknown_rule_contributes_nothing(self):
        lines = [make_line(salesperson_commission=10, rule_id=404)]
        assert calculate_total_company_commission(lines, 1.0, {1: make_rule()}) == 0

    def test_order_profit(self):
        """Scenario: 100 collected, 20 technician, 10 salesperson, 35 company leaves 35."""
        lines = [make_line(salesperson_commission=10, rule_id=1)]
        profit = calculate_order_profit(lines, 100, 1.0, {1: make_rule()})
        assert profit == pytest.approx(35)

    def test_order_profit_accepts_generators(self):
        lines = (line for line in [make_line(salesperson_commission=10, rule_id=1)])
        assert calculate_order_profit(lines, 100, 1.0, [make_rule()]) == pytest.approx(35)
