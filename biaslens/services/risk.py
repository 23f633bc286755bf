"""Risk score reduction and behavioural risk profiling."""

from __future__ import annotations

import numpy as np

from biaslens.models.schemas import (
    BiasResult,
    InstrumentRecommendation,
    PnlTrend,
    RiskLevel,
    RiskProfile,
    Severity,
    Trade,
)

SEVERITY_WEIGHTS: dict[Severity, int] = {"LOW": 10, "MEDIUM": 22, "HIGH": 34}
SEVERITY_POINTS: dict[Severity, int] = {"LOW": 1, "MEDIUM": 2, "HIGH": 3}
MAX_RISK_SCORE = 100

FLAT_PNL_BAND = 50.0

INSTRUMENT_CATALOG: tuple[InstrumentRecommendation, ...] = (
    InstrumentRecommendation(
        ticker="NBI Canadian Equity ETF",
        name="NBI Canadian Equity ETF",
        description="Broad Canadian equity exposure with professional management.",
        is_sponsor_pick=True,
    ),
    InstrumentRecommendation(
        ticker="NBI Global Equity ETF",
        name="NBI Global Equity ETF",
        description="Globally diversified equities to reduce home-country bias.",
        is_sponsor_pick=True,
    ),
    InstrumentRecommendation(
        ticker="NBI Sustainable Canadian Bond ETF",
        name="NBI Sustainable Canadian Bond ETF",
        description="Fixed-income stability with an ESG focus through a diversified bond portfolio.",
        is_sponsor_pick=True,
    ),
    InstrumentRecommendation(
        ticker="XIU",
        name="iShares S&P/TSX 60 ETF",
        description="Low-cost exposure to Canada's 60 largest companies.",
        is_sponsor_pick=False,
    ),
    InstrumentRecommendation(
        ticker="VFV",
        name="Vanguard S&P 500 ETF",
        description="Track the S&P 500 with minimal fees.",
        is_sponsor_pick=False,
    ),
    InstrumentRecommendation(
        ticker="XBAL",
        name="iShares Core Balanced ETF",
        description="60/40 equity-bond mix for balanced risk exposure.",
        is_sponsor_pick=False,
    ),
)


def compute_overall_risk_score(results: list[BiasResult]) -> int:
    """Sum fixed severity weights over all bias results, capped at 100."""
    return min(MAX_RISK_SCORE, sum(SEVERITY_WEIGHTS[r.severity] for r in results))


def compute_risk_profile(trades: list[Trade], bias_results: list[BiasResult]) -> RiskProfile:
    """
    Rate behavioural risk from four 1-3 point sub-scores, averaged:
    longest loss streak, net P&L trend, P&L variance and bias severities.

    Level: HIGH >= 2.5, MEDIUM >= 1.8, else LOW.
    """
    reasons: list[str] = []
    ordered = sorted(trades, key=lambda t: t.timestamp)

    # ── 1) Loss streaks ───────────────────────────────────────────────────────
    max_streak = longest_loss_streak(ordered)
    if max_streak >= 8:
        streak_risk = 3
        reasons.append(f"Your longest loss streak is {max_streak} trades, indicating high emotional risk.")
    elif max_streak >= 5:
        streak_risk = 2
        reasons.append(f"Your longest loss streak is {max_streak} trades.")
    else:
        streak_risk = 1

    # ── 2) P&L trend ──────────────────────────────────────────────────────────
    pnls = np.array([t.pnl for t in ordered], dtype=np.float64)
    net_pnl = float(pnls.sum())
    pnl_trend = classify_pnl_trend(net_pnl)
    if pnl_trend == "NEGATIVE":
        pnl_risk = 3
        reasons.append(f"Net P&L is ${net_pnl:.2f}; you are losing money overall.")
    elif pnl_trend == "FLAT":
        pnl_risk = 2
    else:
        pnl_risk = 1

    # ── 3) P&L variance (volatility proxy) ────────────────────────────────────
    variance = float(pnls.var()) if len(pnls) else 0.0
    if variance > 2500:
        vol_risk = 3
        reasons.append(f"Your P&L volatility is very high (variance: {variance:.0f}).")
    elif variance > 1000:
        vol_risk = 2
        reasons.append("Your P&L shows moderate volatility.")
    else:
        vol_risk = 1

    # ── 4) Bias severities ────────────────────────────────────────────────────
    if bias_results:
        bias_risk = sum(SEVERITY_POINTS[b.severity] for b in bias_results) / len(bias_results)
    else:
        bias_risk = 1.0

    total_score = (streak_risk + pnl_risk + vol_risk + bias_risk) / 4
    if total_score >= 2.5:
        level: RiskLevel = "HIGH"
    elif total_score >= 1.8:
        level = "MEDIUM"
    else:
        level = "LOW"

    return RiskProfile(
        level=level,
        reasons=reasons,
        pnl_trend=pnl_trend,
        recommendations=recommend_instruments(level),
    )


def classify_pnl_trend(net_pnl: float) -> PnlTrend:
    if net_pnl > FLAT_PNL_BAND:
        return "POSITIVE"
    if net_pnl < -FLAT_PNL_BAND:
        return "NEGATIVE"
    return "FLAT"


def recommend_instruments(level: RiskLevel) -> list[InstrumentRecommendation]:
    """Catalog order, with bond/balanced instruments surfaced first for HIGH risk."""
    catalog = list(INSTRUMENT_CATALOG)
    if level == "HIGH":
        # sorted() is stable, so catalog order holds within each group
        catalog = sorted(catalog, key=lambda r: 0 if _is_defensive(r) else 1)
    return [r.model_copy() for r in catalog]


def _is_defensive(recommendation: InstrumentRecommendation) -> bool:
    description = recommendation.description.lower()
    return "bond" in description or "balanced" in description


def longest_loss_streak(trades: list[Trade]) -> int:
    longest = 0
    current = 0
    for t in trades:
        if t.pnl < 0:
            current += 1
            longest = max(longest, current)
        else:
            current = 0
    return longest
