"""Loss aversion / disposition effect detector."""

from biaslens.models.schemas import BiasResult, SummaryMetrics

MIN_HOLD_DENOMINATOR = 0.1


def detect_loss_aversion(m: SummaryMetrics) -> BiasResult:
    """
    Detect loss aversion / disposition bias:
    1. Holding losers longer than winners while losses outsize wins
       (magnitude only when no hold-time data exists)
    2. Unbalanced risk/reward: average winning return well below the
       average losing return
    3. Cutting winners early: most winning returns sit at the small end

    Severity: HIGH >= 3 points, MEDIUM >= 2, else LOW.
    """
    evidence: list[str] = []
    score = 0
    abs_avg_loss = abs(m.avg_loss)

    evidence.append(f"Your average loss (${abs_avg_loss:.2f}) vs average win (${m.avg_win:.2f}).")

    # ── Signal 1: Hold time / magnitude asymmetry ─────────────────────────────
    if m.avg_hold_minutes_losses is not None and m.avg_hold_minutes_wins is not None:
        hold_ratio = m.avg_hold_minutes_losses / max(m.avg_hold_minutes_wins, MIN_HOLD_DENOMINATOR)
        evidence.append(
            f"You hold losses {hold_ratio:.1f}x longer than winners "
            f"({m.avg_hold_minutes_losses:.1f} min vs {m.avg_hold_minutes_wins:.1f} min)."
        )
        if hold_ratio > 1.5 and abs_avg_loss > m.avg_win:
            score += 2
        elif hold_ratio > 1.2 or abs_avg_loss > m.avg_win * 1.2:
            score += 1
    else:
        if abs_avg_loss > m.avg_win * 1.5:
            score += 2
            evidence.append("Your losses are significantly larger than your wins (no hold-time data available).")
        elif abs_avg_loss > m.avg_win * 1.2:
            score += 1
            evidence.append("Your losses are moderately larger than your wins.")

    # ── Signal 2: Risk/reward on returns ──────────────────────────────────────
    if m.risk_reward_ratio is not None:
        evidence.append(
            f"Average winning return {m.avg_win_return_pct * 100:.2f}% vs average losing return "
            f"{m.avg_loss_return_pct * 100:.2f}% (risk/reward {m.risk_reward_ratio:.2f})."
        )
        if m.risk_reward_ratio < 0.7:
            score += 2
        elif m.risk_reward_ratio < 0.9:
            score += 1

    # ── Signal 3: Cutting winners early ───────────────────────────────────────
    if m.small_win_rate is not None and m.small_win_rate > 0.6:
        score += 1
        evidence.append(
            f"{m.small_win_rate * 100:.0f}% of your winning trades return "
            f"{m.small_win_threshold * 100:.2f}% or less; you may be closing winners too early."
        )

    evidence.append(f"Profit factor: {m.profit_factor:.2f} (below 1.0 means net losing).")

    severity = "HIGH" if score >= 3 else "MEDIUM" if score >= 2 else "LOW"
    return BiasResult(bias="LOSS_AVERSION", severity=severity, evidence=evidence, score=score)
