"""Revenge trading bias detector."""

from biaslens.models.schemas import BiasResult, SummaryMetrics


def detect_revenge_trading(m: SummaryMetrics) -> BiasResult:
    """
    Detect revenge trading, impulsive attempts to "win back" losses:
    1. Clustering: many trades inside the 30 min after a loss, with a
       worse win rate than usual
    2. Size escalation: bigger positions in the 30 min after a loss
    3. Streak acceleration: trading faster after 2+ consecutive losses
    4. Streak escalation: trading bigger after 2+ consecutive losses

    Severity: HIGH >= 3 points, MEDIUM >= 2, else LOW.
    """
    evidence: list[str] = []
    score = 0
    follow_ups = m.post_loss_trades_within_30_min_avg

    evidence.append(f"After losses, you place ~{follow_ups:.1f} trades within 30 minutes.")
    evidence.append(
        f"Your win rate after a loss: {m.post_loss_win_rate * 100:.0f}% (overall: {m.win_rate * 100:.0f}%)."
    )

    # ── Signal 1: Post-loss clustering ────────────────────────────────────────
    # No trades inside any post-loss window means there is no post-loss win rate to compare.
    win_rate_drop = m.win_rate - m.post_loss_win_rate if m.post_loss_trade_count > 0 else 0.0
    if follow_ups >= 3 and win_rate_drop > 0.10:
        score += 2
    elif follow_ups >= 2 or win_rate_drop > 0.05:
        score += 1
    if win_rate_drop > 0:
        evidence.append(f"Your win rate drops by {win_rate_drop * 100:.0f} percentage points after a loss.")

    # ── Signal 2: Size escalation after a loss ────────────────────────────────
    if m.size_after_loss_ratio is not None and m.size_after_loss_ratio >= 1.3:
        score += 1
        evidence.append(
            f"Your position size grows to {m.size_after_loss_ratio:.2f}x your average in the 30 minutes after a loss."
        )

    # ── Signal 3: Faster trading after a losing streak ────────────────────────
    streak_gap = m.avg_minutes_between_trades_after_streak
    normal_gap = m.avg_minutes_between_trades
    if streak_gap is not None and normal_gap > 0 and streak_gap < normal_gap * 0.7:
        score += 1
        evidence.append(
            f"After 2+ consecutive losses you trade again within {streak_gap:.1f} minutes "
            f"(usual gap: {normal_gap:.1f} minutes)."
        )

    # ── Signal 4: Bigger trades after a losing streak ─────────────────────────
    streak_size = m.avg_trade_size_after_streak
    if streak_size is not None and m.avg_trade_size is not None and streak_size > m.avg_trade_size * 1.2:
        score += 1
        evidence.append(
            f"After 2+ consecutive losses your average trade size is ${streak_size:,.2f} "
            f"vs ${m.avg_trade_size:,.2f} overall."
        )

    severity = "HIGH" if score >= 3 else "MEDIUM" if score >= 2 else "LOW"
    return BiasResult(bias="REVENGE_TRADING", severity=severity, evidence=evidence, score=score)
