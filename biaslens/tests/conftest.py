"""Shared trade fixtures for the test suite."""

from datetime import datetime, timezone

import pytest

from biaslens.models.schemas import Trade

MINUTE_MS = 60_000
DAY_MS = 24 * 60 * MINUTE_MS


def _ms(dt: datetime) -> int:
    return int(dt.timestamp() * 1000)


@pytest.fixture
def make_trade():
    """Factory for trades with sensible required fields."""

    def _make(i: int = 0, **overrides) -> Trade:
        fields = {
            "id": f"T{i:04d}",
            "timestamp": _ms(datetime(2025, 3, 3, 9, 30, tzinfo=timezone.utc)) + i * MINUTE_MS,
            "side": "BUY",
            "asset": "AAPL",
            "pnl": 10.0,
        }
        fields.update(overrides)
        return Trade(**fields)

    return _make


@pytest.fixture
def scenario_a_trades():
    """
    200 trades over 5 days, 40 per day, outcome cycle W L L W L.

    Losses are held longer and lose twice the return of wins, losses are
    followed by a 3 minute re-entry, trades after a loss are doubled in size
    and every trade switches asset.
    """
    cycle = ["W", "L", "L", "W", "L"]
    trades = []
    index = 0
    previous_was_loss = False
    for day in range(5):
        cursor = _ms(datetime(2025, 3, 3, 9, 30, tzinfo=timezone.utc)) + day * DAY_MS
        for _ in range(40):
            is_win = cycle[index % 5] == "W"
            trades.append(
                Trade(
                    id=f"A{index:03d}",
                    timestamp=cursor,
                    side="BUY",
                    asset="AAPL" if index % 2 == 0 else "TSLA",
                    pnl=35.0 if is_win else -55.0,
                    hold_minutes=5.0 if is_win else 25.0,
                    entry_price=100.0,
                    exit_price=100.5 if is_win else 99.0,
                    position_size=4000.0 if previous_was_loss else 2000.0,
                    account_balance=10_000.0,
                )
            )
            cursor += (12 if is_win else 3) * MINUTE_MS
            previous_was_loss = not is_win
            index += 1
    return trades


@pytest.fixture
def scenario_b_trades():
    """10 trades, one per day at varying hours, 6 wins of $40 and 4 losses of $20."""
    outcomes = [40.0, -20.0, 40.0, 40.0, -20.0, 40.0, -20.0, 40.0, -20.0, 40.0]
    start = _ms(datetime(2025, 3, 3, 10, 0, tzinfo=timezone.utc))
    return [
        Trade(
            id=f"B{i}",
            timestamp=start + i * DAY_MS + (i % 5) * 60 * MINUTE_MS,
            side="BUY" if i % 2 == 0 else "SELL",
            asset="SPY",
            pnl=pnl,
        )
        for i, pnl in enumerate(outcomes)
    ]


@pytest.fixture
def legacy_trades(make_trade):
    """Trades carrying only the required fields."""
    pnls = [25.0, -40.0, -15.0, 60.0, -30.0, 10.0, -70.0, 45.0]
    return [make_trade(i * 7, id=f"L{i}", pnl=pnl) for i, pnl in enumerate(pnls)]
