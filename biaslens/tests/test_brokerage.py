"""Unit tests for the brokerage fee comparison."""

import pytest

from biaslens.services.brokerage import TRADING_DAYS_PER_YEAR, compare_brokerages, savings_message
from biaslens.services.metrics import compute_metrics


@pytest.fixture
def metrics(scenario_a_trades):
    return compute_metrics(scenario_a_trades)


def test_annual_cost_arithmetic(metrics):
    comparisons = {c.name: c for c in compare_brokerages(metrics)}
    annual_trades = round(metrics.trades_per_day_avg * TRADING_DAYS_PER_YEAR)

    assert annual_trades == 10_080
    assert comparisons["Brokerage A (Full-Service)"].estimated_annual_cost == round(9.99 * annual_trades)
    assert comparisons["Partner Direct Brokerage (Illustrative)"].estimated_annual_cost == 119
    assert comparisons["Brokerage D (Zero-Commission)"].estimated_annual_cost == 0


def test_partner_highlight(metrics):
    partner = next(c for c in compare_brokerages(metrics) if c.is_partner)

    assert partner.highlight.startswith("Based on your 40.0 trades/day")


def test_overrides(metrics):
    comparisons = compare_brokerages(metrics, overrides={"Brokerage B (Discount)": {"per_trade": 1.0}})
    discount = next(c for c in comparisons if c.name == "Brokerage B (Discount)")

    assert discount.per_trade == 1.0
    assert discount.estimated_annual_cost == 10_080


def test_savings_message(metrics):
    message = savings_message(compare_brokerages(metrics))

    assert message.startswith("Compared to Brokerage A (Full-Service)")
    assert "/year." in message


def test_savings_message_without_partner(metrics):
    comparisons = [c for c in compare_brokerages(metrics) if not c.is_partner]
    assert savings_message(comparisons) == ""
