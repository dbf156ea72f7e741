"""
Commission calculation.

Pure functions splitting a service line's revenue between the technician,
the referring salesperson and the company. They accept anything exposing
the relevant attributes (ORM rows, pydantic models, test doubles) and never
touch the database.

Percentages are expressed as whole numbers (10 means 10%).
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Protocol

from shared.config.constants import CompanyCommissionType, SalespersonCommissionType


class CommissionLine(Protocol):
    price: float
    technician_commission: float
    salesperson_commission: float
    company_commission_rule_id: int | None
    company_commission_amount: float


class SalespersonTerms(Protocol):
    commission_type: str
    commission_rate: float


class CompanyRule(Protocol):
    id: int
    commission_type: str
    commission_rate: float


def _amount(value: float | None) -> float:
    return float(value or 0)


def calculate_discount_rate(received_amount: float, total_amount: float) -> float:
    """Share of the list price actually collected. An empty order counts as undiscounted."""
    if not total_amount:
        return 1.0
    return received_amount / total_amount


def calculate_salesperson_commission(
    item: CommissionLine,
    salesperson: SalespersonTerms | None,
    discount_rate: float = 1.0,
) -> float:
    """
    Salesperson payout for one line.

    A fixed commission is a flat amount per line and ignores the discount;
    a percentage commission scales with what was actually collected.
    """
    if salesperson is None:
        return 0.0

    if salesperson.commission_type == SalespersonCommissionType.FIXED:
        return _amount(salesperson.commission_rate)
    if salesperson.commission_type == SalespersonCommissionType.PERCENTAGE:
        return _amount(item.price) * _amount(salesperson.commission_rate) / 100 * discount_rate
    return 0.0


def calculate_item_company_commission(
    item: CommissionLine,
    discount_rate: float,
    rule: CompanyRule | None,
) -> float:
    """
    Company share of one line.

    In profit mode the share is taken after the technician and salesperson
    payouts, so salesperson_commission must already be set on the item.
    """
    if rule is None or rule.commission_type == CompanyCommissionType.NONE:
        return 0.0

    item_received = _amount(item.price) * discount_rate
    rate = _amount(rule.commission_rate)

    if rule.commission_type == CompanyCommissionType.REVENUE:
        return item_received * rate / 100
    if rule.commission_type == CompanyCommissionType.PROFIT:
        item_profit = (
            item_received
            - _amount(item.technician_commission)
            - _amount(item.salesperson_commission)
        )
        return item_profit * rate / 100
    return 0.0


def calculate_total_technician_commission(items: Iterable[CommissionLine]) -> float:
    return sum(_amount(item.technician_commission) for item in items)


def calculate_total_salesperson_commission(items: Iterable[CommissionLine]) -> float:
    return sum(_amount(item.salesperson_commission) for item in items)


def calculate_total_company_commission(
    items: Iterable[CommissionLine],
    discount_rate: float,
    rules: Mapping[int, CompanyRule] | Iterable[CompanyRule],
) -> float:
    """
    Company share over all lines, recomputed from the given rules.

    Lines without a rule, or whose rule no longer exists, contribute 0.
    """
    rules_by_id = _index_rules(rules)
    total = 0.0
    for item in items:
        rule = rules_by_id.get(item.company_commission_rule_id)
        total += calculate_item_company_commission(item, discount_rate, rule)
    return total


def calculate_order_profit(
    items: Iterable[CommissionLine],
    received_amount: float,
    discount_rate: float,
    rules: Mapping[int, CompanyRule] | Iterable[CompanyRule],
) -> float:
    """What is left of the collected amount after every party has been paid."""
    items = list(items)
    return (
        received_amount
        - calculate_total_technician_commission(items)
        - calculate_total_salesperson_commission(items)
        - calculate_total_company_commission(items, discount_rate, rules)
    )


def _index_rules(
    rules: Mapping[int, CompanyRule] | Iterable[CompanyRule],
) -> Mapping[int, CompanyRule]:
    if isinstance(rules, Mapping):
        return rules
    return {rule.id: rule for rule in rules}
