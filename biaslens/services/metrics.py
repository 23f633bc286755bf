"""Summary metrics aggregation over a time-ordered trade batch."""

from __future__ import annotations

from collections import Counter, defaultdict
from datetime import timezone, tzinfo
from typing import Optional

from biaslens.core.errors import EmptyInputError
from biaslens.core.logging import logger
from biaslens.detectors.runner import detect_biases
from biaslens.models.schemas import DataCompleteness, Severity, SummaryMetrics, Trade
from biaslens.utils.stats_utils import mean, mean_or_none, percentile, ratio_or_none
from biaslens.utils.time_utils import (
    format_hour_range,
    minutes_between,
    timestamp_to_date_string,
    timestamp_to_hour,
)

DAY_BOUNDARY_GAP_MIN = 720  # gaps this long are overnight breaks, not pace
FOLLOW_UP_WINDOW_MIN = 30
COVERAGE_THRESHOLD = 0.6
LARGE_WIN_BALANCE_FRACTION = 0.01
LARGE_WIN_PERCENTILE = 90
SMALL_WIN_PERCENTILE = 25
PROFIT_FACTOR_NO_LOSSES = 999.0
WORST_HOURS_LIMIT = 3


def compute_metrics(trades: list[Trade], tz: tzinfo = timezone.utc) -> SummaryMetrics:
    """
    Aggregate a trade batch into a SummaryMetrics snapshot.

    The work runs in three explicit steps:
    1. aggregate every statistic over the trades sorted by timestamp
    2. run the bias detectors over the aggregated snapshot
    3. attach the detected biases, severities and evidence to a new snapshot

    Day and hour buckets are taken in ``tz`` (UTC unless told otherwise).
    Raises EmptyInputError when ``trades`` is empty.
    """
    if not trades:
        raise EmptyInputError()

    ordered = sorted(trades, key=lambda t: t.timestamp)
    total = len(ordered)

    # ── Window & day bucketing ────────────────────────────────────────────────
    trading_window = (
        f"{timestamp_to_date_string(ordered[0].timestamp, tz)} to "
        f"{timestamp_to_date_string(ordered[-1].timestamp, tz)}"
    )
    day_counts = Counter(timestamp_to_date_string(t.timestamp, tz) for t in ordered)
    active_days = len(day_counts)

    # ── Inter-trade gaps ──────────────────────────────────────────────────────
    gaps = [
        gap
        for gap in (minutes_between(prev.timestamp, curr.timestamp) for prev, curr in zip(ordered, ordered[1:]))
        if gap < DAY_BOUNDARY_GAP_MIN
    ]
    avg_gap = round(mean(gaps), 2) if gaps else 0.0

    # ── Win/loss aggregates ───────────────────────────────────────────────────
    wins = [t for t in ordered if t.pnl > 0]
    losses = [t for t in ordered if t.pnl < 0]
    total_won = sum(t.pnl for t in wins)
    total_lost = abs(sum(t.pnl for t in losses))
    if total_lost > 0:
        profit_factor = round(total_won / total_lost, 2)
    else:
        profit_factor = PROFIT_FACTOR_NO_LOSSES if total_won > 0 else 0.0

    # ── Hold-time split ───────────────────────────────────────────────────────
    avg_hold_wins = mean_or_none([t.hold_minutes for t in wins if t.hold_minutes is not None])
    avg_hold_losses = mean_or_none([t.hold_minutes for t in losses if t.hold_minutes is not None])

    # ── Post-loss window scan ─────────────────────────────────────────────────
    post_loss_avg, post_loss_win_rate, post_loss_count = _post_loss_stats(ordered)

    # ── Data completeness ─────────────────────────────────────────────────────
    completeness = _data_completeness(ordered)

    # ── Balance & size ────────────────────────────────────────────────────────
    avg_balance = mean_or_none([t.account_balance for t in ordered if t.account_balance is not None])
    sizes = [t.size for t in ordered if t.size is not None]
    avg_size = mean_or_none(sizes)
    total_notional = sum(sizes)
    balance_turnover = ratio_or_none(total_notional if total_notional > 0 else None, avg_balance)

    # ── Position switching ────────────────────────────────────────────────────
    transitions = total - 1
    asset_switches = sum(1 for prev, curr in zip(ordered, ordered[1:]) if prev.asset != curr.asset)
    side_flips = sum(1 for prev, curr in zip(ordered, ordered[1:]) if prev.side != curr.side)
    asset_switch_rate = round(asset_switches / transitions, 2) if transitions > 0 else 0.0
    side_flip_rate = round(side_flips / transitions, 2) if transitions > 0 else 0.0

    # ── Hourly clustering ─────────────────────────────────────────────────────
    hourly_counts = [0] * 24
    for t in ordered:
        hourly_counts[timestamp_to_hour(t.timestamp, tz)] += 1
    max_hourly_share = round(max(hourly_counts) / total, 2)

    # ── Large-win follow-ups ──────────────────────────────────────────────────
    post_win_avg, large_win_threshold = _post_win_stats(ordered, avg_balance)

    # ── Return-based risk/reward ──────────────────────────────────────────────
    returns = [r for r in (t.return_pct for t in ordered) if r is not None]
    win_returns = [r for r in returns if r > 0]
    loss_returns = [abs(r) for r in returns if r < 0]
    avg_win_return = mean_or_none(win_returns, 4)
    avg_loss_return = mean_or_none(loss_returns, 4)
    risk_reward = ratio_or_none(avg_win_return, avg_loss_return)

    small_win_threshold: Optional[float] = None
    small_win_rate: Optional[float] = None
    if win_returns:
        cutoff = percentile(win_returns, SMALL_WIN_PERCENTILE)
        small_win_threshold = round(cutoff, 4)
        small_win_rate = round(sum(1 for r in win_returns if r <= cutoff) / len(win_returns), 2)

    # ── Size escalation after losses ──────────────────────────────────────────
    avg_size_after_loss = _avg_size_after_loss(ordered)
    size_after_loss_ratio = ratio_or_none(avg_size_after_loss, avg_size)
    avg_size_after_streak, avg_gap_after_streak = _after_streak_stats(ordered)

    metrics = SummaryMetrics(
        trading_window=trading_window,
        total_trades=total,
        active_days=active_days,
        trades_per_day_avg=round(total / active_days, 2),
        trades_per_day_max=max(day_counts.values()),
        avg_minutes_between_trades=avg_gap,
        intraday_gap_count=len(gaps),
        win_rate=len(wins) / total,
        avg_win=round(total_won / len(wins), 2) if wins else 0.0,
        avg_loss=round(-total_lost / len(losses), 2) if losses else 0.0,
        profit_factor=profit_factor,
        avg_hold_minutes_wins=avg_hold_wins,
        avg_hold_minutes_losses=avg_hold_losses,
        post_loss_trades_within_30_min_avg=post_loss_avg,
        post_loss_win_rate=post_loss_win_rate,
        post_loss_trade_count=post_loss_count,
        avg_account_balance=avg_balance,
        avg_trade_size=avg_size,
        balance_turnover=balance_turnover,
        asset_switch_rate=asset_switch_rate,
        side_flip_rate=side_flip_rate,
        hourly_trade_counts=tuple(hourly_counts),
        max_hourly_trade_share=max_hourly_share,
        post_win_trades_within_30_min_avg=post_win_avg,
        large_win_threshold=large_win_threshold,
        avg_win_return_pct=avg_win_return,
        avg_loss_return_pct=avg_loss_return,
        risk_reward_ratio=risk_reward,
        small_win_rate=small_win_rate,
        small_win_threshold=small_win_threshold,
        avg_trade_size_after_loss=avg_size_after_loss,
        size_after_loss_ratio=size_after_loss_ratio,
        avg_trade_size_after_streak=avg_size_after_streak,
        avg_minutes_between_trades_after_streak=avg_gap_after_streak,
        worst_hours=_worst_hours(ordered, tz),
        data_completeness=completeness,
    )

    # ── Detect, then attach ───────────────────────────────────────────────────
    results = detect_biases(metrics)
    severities: dict[str, Severity] = {r.bias: r.severity for r in results}
    logger.debug("Metrics computed for %d trades: severities=%s", total, severities)

    return metrics.model_copy(
        update={
            "detected_biases": tuple(r.bias for r in results),
            "severities": severities,
            "evidence": {r.bias: tuple(r.evidence) for r in results},
            "bias_scores": {r.bias: r.score for r in results},
        }
    )


# ── Helpers ──────────────────────────────────────────────────────────────────


def _follow_up_indices(ordered: list[Trade], idx: int) -> list[int]:
    """Indices of trades placed within the follow-up window after ``ordered[idx]``."""
    origin = ordered[idx].timestamp
    found: list[int] = []
    for j in range(idx + 1, len(ordered)):
        if minutes_between(origin, ordered[j].timestamp) > FOLLOW_UP_WINDOW_MIN:
            break
        found.append(j)
    return found


def _post_loss_stats(ordered: list[Trade]) -> tuple[float, float, int]:
    """Average follow-up count per loss, win rate inside post-loss windows, trades counted."""
    loss_indices = [i for i, t in enumerate(ordered) if t.pnl < 0]
    if not loss_indices:
        return 0.0, 0.0, 0

    follow_ups = 0
    window_wins = 0
    for idx in loss_indices:
        window = _follow_up_indices(ordered, idx)
        follow_ups += len(window)
        window_wins += sum(1 for j in window if ordered[j].pnl > 0)

    win_rate = round(window_wins / follow_ups, 2) if follow_ups > 0 else 0.0
    return round(follow_ups / len(loss_indices), 2), win_rate, follow_ups


def _data_completeness(ordered: list[Trade]) -> DataCompleteness:
    total = len(ordered)
    entry_exit = sum(1 for t in ordered if t.entry_price is not None and t.exit_price is not None) / total
    balance = sum(1 for t in ordered if t.account_balance is not None) / total
    size = sum(1 for t in ordered if t.size is not None) / total

    missing: list[str] = []
    if entry_exit < COVERAGE_THRESHOLD:
        missing.append("entry_price/exit_price")
    if balance < COVERAGE_THRESHOLD:
        missing.append("account_balance")
    if size < COVERAGE_THRESHOLD:
        missing.append("qty/position_size")

    return DataCompleteness(
        entry_exit_coverage=round(entry_exit, 2),
        balance_coverage=round(balance, 2),
        size_coverage=round(size, 2),
        missing_fields=missing,
    )


def _post_win_stats(ordered: list[Trade], avg_balance: Optional[float]) -> tuple[float, Optional[float]]:
    """Average follow-up count after large wins, and the large-win threshold used."""
    win_pnls = [t.pnl for t in ordered if t.pnl > 0]
    if not win_pnls:
        return 0.0, None

    if avg_balance:
        threshold = round(avg_balance * LARGE_WIN_BALANCE_FRACTION, 2)
    else:
        threshold = round(percentile(win_pnls, LARGE_WIN_PERCENTILE), 2)

    large_win_indices = [i for i, t in enumerate(ordered) if t.pnl > 0 and t.pnl >= threshold]
    if not large_win_indices:
        return 0.0, threshold

    follow_ups = sum(len(_follow_up_indices(ordered, idx)) for idx in large_win_indices)
    return round(follow_ups / len(large_win_indices), 2), threshold


def _avg_size_after_loss(ordered: list[Trade]) -> Optional[float]:
    sizes: list[float] = []
    for idx, trade in enumerate(ordered):
        if trade.pnl >= 0:
            continue
        for j in _follow_up_indices(ordered, idx):
            size = ordered[j].size
            if size is not None:
                sizes.append(size)
    return mean_or_none(sizes)


def _after_streak_stats(ordered: list[Trade]) -> tuple[Optional[float], Optional[float]]:
    """Average size and gap of trades placed right after two or more consecutive losses."""
    sizes: list[float] = []
    gaps: list[float] = []
    for i in range(2, len(ordered)):
        if ordered[i - 1].pnl < 0 and ordered[i - 2].pnl < 0:
            size = ordered[i].size
            if size is not None:
                sizes.append(size)
            gaps.append(minutes_between(ordered[i - 1].timestamp, ordered[i].timestamp))
    return mean_or_none(sizes), mean_or_none(gaps)


def _worst_hours(ordered: list[Trade], tz: tzinfo) -> tuple[str, ...]:
    hour_pnl: dict[int, float] = defaultdict(float)
    for t in ordered:
        hour_pnl[timestamp_to_hour(t.timestamp, tz)] += t.pnl

    losing_hours = sorted((pnl, hour) for hour, pnl in hour_pnl.items() if pnl < 0)
    return tuple(format_hour_range(hour) for _, hour in losing_hours[:WORST_HOURS_LIMIT])
