"""Deterministic sample dataset that exhibits all three biases."""

from __future__ import annotations

from datetime import datetime, timezone

from biaslens.models.schemas import Trade

SAMPLE_ASSETS = ["AAPL", "TSLA", "NVDA", "AMD", "SPY", "QQQ", "MSFT", "AMZN"]
SAMPLE_DAYS = [datetime(2025, 1, day, 9, 30, tzinfo=timezone.utc) for day in (27, 28, 29, 30, 31)]
SESSION_MINUTES = 6.5 * 60
MAX_TRADES_PER_DAY = 40
WIN_PROBABILITY = 0.42
REVENGE_PROBABILITY = 0.65


class _Lcg:
    """Seeded linear congruential generator, identical output on every platform."""

    def __init__(self, seed: int):
        self.state = seed

    def random(self) -> float:
        self.state = (self.state * 1664525 + 1013904223) & 0x7FFFFFFF
        return self.state / 0x7FFFFFFF

    def choice(self, items: list[str]) -> str:
        return items[int(self.random() * len(items))]


def generate_sample_trades(seed: int = 42) -> list[Trade]:
    """
    Generate ~200 trades over 5 trading days:
    - Overtrading: up to 40 trades/day, mostly 5-20 min apart
    - Loss aversion: wins are small and closed fast, losses bigger and held long
    - Revenge trading: most losses are followed by a 2-8 min re-entry
    Legacy-shaped: no prices or balances, so extended metrics degrade to None.
    """
    rng = _Lcg(seed)
    trades: list[Trade] = []

    for day_start in SAMPLE_DAYS:
        cursor = day_start.timestamp() * 1000
        day_end = cursor + SESSION_MINUTES * 60_000
        day_count = 0

        while cursor < day_end and day_count < MAX_TRADES_PER_DAY:
            is_win = rng.random() < WIN_PROBABILITY
            side = "BUY" if rng.random() < 0.6 else "SELL"
            asset = rng.choice(SAMPLE_ASSETS)

            if is_win:
                pnl = round(15 + rng.random() * 50, 2)
                hold_minutes = round(3 + rng.random() * 15, 1)
            else:
                pnl = -round(25 + rng.random() * 90, 2)
                hold_minutes = round(10 + rng.random() * 50, 1)

            timestamp = int(round(cursor))
            trades.append(
                Trade(
                    id=f"sample-{timestamp}-{asset}-{len(trades)}",
                    timestamp=timestamp,
                    side=side,
                    asset=asset,
                    pnl=pnl,
                    qty=float(10 + int(rng.random() * 90)),
                    hold_minutes=hold_minutes,
                )
            )
            day_count += 1

            if not is_win and rng.random() < REVENGE_PROBABILITY:
                gap = 2 + rng.random() * 6
            else:
                gap = 5 + rng.random() * 15
            cursor += gap * 60_000

    return trades
