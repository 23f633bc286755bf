"""Illustrative brokerage fee comparison. Fee schedules are examples, not real quotes."""

from typing import Optional

from biaslens.models.schemas import BrokerageComparison, SummaryMetrics

TRADING_DAYS_PER_YEAR = 252

FEE_SCHEDULES: list[dict] = [
    {"name": "Brokerage A (Full-Service)", "per_trade": 9.99, "monthly_fee": 0.0},
    {"name": "Brokerage B (Discount)", "per_trade": 6.95, "monthly_fee": 0.0},
    {"name": "Brokerage C (Online)", "per_trade": 4.95, "monthly_fee": 0.0},
    {"name": "Partner Direct Brokerage (Illustrative)", "per_trade": 0.0, "monthly_fee": 9.95, "is_partner": True},
    {"name": "Brokerage D (Zero-Commission)", "per_trade": 0.0, "monthly_fee": 0.0},
]


def compare_brokerages(
    metrics: SummaryMetrics,
    overrides: Optional[dict[str, dict[str, float]]] = None,
) -> list[BrokerageComparison]:
    """Estimate annual cost per fee schedule from the trader's daily pace."""
    annual_trades = round(metrics.trades_per_day_avg * TRADING_DAYS_PER_YEAR)
    overrides = overrides or {}

    comparisons = []
    for schedule in FEE_SCHEDULES:
        override = overrides.get(schedule["name"], {})
        per_trade = override.get("per_trade", schedule["per_trade"])
        monthly_fee = override.get("monthly_fee", schedule["monthly_fee"])
        is_partner = schedule.get("is_partner", False)

        comparisons.append(
            BrokerageComparison(
                name=schedule["name"],
                per_trade=per_trade,
                monthly_fee=monthly_fee,
                estimated_annual_cost=round(per_trade * annual_trades + monthly_fee * 12),
                is_partner=is_partner,
                highlight=(
                    f"Based on your {metrics.trades_per_day_avg} trades/day, a lower-cost "
                    "commission structure could save you money."
                    if is_partner
                    else None
                ),
            )
        )
    return comparisons


def savings_message(comparisons: list[BrokerageComparison]) -> str:
    """Compare the most expensive schedule with the partner one; empty when there is no saving."""
    partner = next((c for c in comparisons if c.is_partner), None)
    if partner is None or not comparisons:
        return ""

    most_expensive = max(comparisons, key=lambda c: c.estimated_annual_cost)
    savings = most_expensive.estimated_annual_cost - partner.estimated_annual_cost
    if savings <= 0:
        return ""
    return f"Compared to {most_expensive.name}, a lower-cost model could save you ~${savings:,}/year."
