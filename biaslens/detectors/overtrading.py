"""Overtrading bias detector: pace, capital churn and clustering."""

from biaslens.models.schemas import BiasResult, SummaryMetrics


def detect_overtrading(m: SummaryMetrics) -> BiasResult:
    """
    Score overtrading from the aggregated metrics.

    Signals (additive points):
    1. Pace: > 20 trades/day or < 15 min between trades (+2), else
       > 12 trades/day or < 30 min between trades (+1)
    2. Balance turnover above 5x (+2) or 3x (+1) the average account balance
    3. Asset switching on more than 60% of consecutive trades (+1)
    4. More than 25% of all trades concentrated in one hour of the day (+1)
    5. Three or more follow-up trades within 30 min of a large win (+1)

    Severity: HIGH >= 4 points, MEDIUM >= 2, else LOW.
    """
    # The gap average only counts when at least one intraday gap exists;
    # one trade per day leaves it at 0 without meaning "fast".
    has_gaps = m.intraday_gap_count > 0
    if has_gaps:
        gap_line = f"Your average time between trades is {m.avg_minutes_between_trades} minutes."
    else:
        gap_line = "No same-day gaps between trades; pace is judged on trades per day only."
    evidence: list[str] = [
        f"You average {m.trades_per_day_avg} trades/day (healthy target: 10-15).",
        gap_line,
        f"Peak trading day: {m.trades_per_day_max} trades in a single session.",
    ]
    score = 0

    # ── Signal 1: Pace ────────────────────────────────────────────────────────
    gap = m.avg_minutes_between_trades
    if m.trades_per_day_avg > 20 or (has_gaps and gap < 15):
        score += 2
    elif m.trades_per_day_avg > 12 or (has_gaps and gap < 30):
        score += 1

    # ── Signal 2: Capital churn ───────────────────────────────────────────────
    if m.balance_turnover is not None:
        if m.balance_turnover > 5:
            score += 2
        elif m.balance_turnover > 3:
            score += 1
        if m.balance_turnover > 3:
            evidence.append(
                f"You traded {m.balance_turnover}x your average account balance "
                f"(${m.avg_account_balance:,.2f}) over this period."
            )

    # ── Signal 3: Asset hopping ───────────────────────────────────────────────
    if m.asset_switch_rate > 0.6:
        score += 1
        evidence.append(
            f"{m.asset_switch_rate * 100:.0f}% of your consecutive trades switch to a different asset."
        )

    # ── Signal 4: Hourly clustering ───────────────────────────────────────────
    if m.max_hourly_trade_share > 0.25:
        score += 1
        evidence.append(
            f"{m.max_hourly_trade_share * 100:.0f}% of your trades happen within a single hour of the day."
        )

    # ── Signal 5: Chasing after large wins ────────────────────────────────────
    if m.post_win_trades_within_30_min_avg is not None and m.post_win_trades_within_30_min_avg >= 3:
        score += 1
        evidence.append(
            f"After large wins (${m.large_win_threshold:,.2f}+), you place "
            f"~{m.post_win_trades_within_30_min_avg:.1f} more trades within 30 minutes."
        )

    severity = "HIGH" if score >= 4 else "MEDIUM" if score >= 2 else "LOW"
    return BiasResult(bias="OVERTRADING", severity=severity, evidence=evidence, score=score)
