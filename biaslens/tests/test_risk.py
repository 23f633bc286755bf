"""Unit tests for the risk score and risk profile."""

from itertools import permutations

import pytest

from biaslens.models.schemas import BiasResult
from biaslens.services.risk import (
    classify_pnl_trend,
    compute_overall_risk_score,
    compute_risk_profile,
    longest_loss_streak,
    recommend_instruments,
)


def _result(bias, severity):
    return BiasResult(bias=bias, severity=severity, evidence=[])


@pytest.mark.parametrize(
    "severities,expected",
    [
        (("LOW", "LOW", "LOW"), 30),
        (("MEDIUM", "LOW", "HIGH"), 66),
        (("MEDIUM", "MEDIUM", "MEDIUM"), 66),
        (("HIGH", "HIGH", "HIGH"), 100),
    ],
)
def test_overall_risk_score(severities, expected):
    biases = ["OVERTRADING", "LOSS_AVERSION", "REVENGE_TRADING"]
    results = [_result(b, s) for b, s in zip(biases, severities)]
    assert compute_overall_risk_score(results) == expected


def test_overall_risk_score_order_independent():
    results = [
        _result("OVERTRADING", "HIGH"),
        _result("LOSS_AVERSION", "LOW"),
        _result("REVENGE_TRADING", "MEDIUM"),
    ]
    scores = {compute_overall_risk_score(list(p)) for p in permutations(results)}

    assert len(scores) == 1
    assert 0 <= scores.pop() <= 100


def test_overall_risk_score_empty():
    assert compute_overall_risk_score([]) == 0


def test_pnl_trend_band():
    assert classify_pnl_trend(51) == "POSITIVE"
    assert classify_pnl_trend(50) == "FLAT"
    assert classify_pnl_trend(-50) == "FLAT"
    assert classify_pnl_trend(-51) == "NEGATIVE"


def test_longest_loss_streak(make_trade):
    pnls = [-1, -1, 5, -1, -1, -1, 0, -1]
    trades = [make_trade(i, pnl=p) for i, p in enumerate(pnls)]
    assert longest_loss_streak(trades) == 3


def test_risk_profile_high(make_trade):
    pnls = [-120] * 8 + [150, -90]
    trades = [make_trade(i, pnl=p) for i, p in enumerate(pnls)]
    biases = [_result(b, "HIGH") for b in ("OVERTRADING", "LOSS_AVERSION", "REVENGE_TRADING")]

    profile = compute_risk_profile(trades, biases)

    assert profile.level == "HIGH"
    assert profile.pnl_trend == "NEGATIVE"
    assert "Your longest loss streak is 8 trades, indicating high emotional risk." in profile.reasons
    # bond and balanced instruments come first for HIGH risk
    assert profile.recommendations[0].ticker == "NBI Sustainable Canadian Bond ETF"
    assert profile.recommendations[1].ticker == "XBAL"


def test_risk_profile_low(scenario_b_trades):
    biases = [_result(b, "LOW") for b in ("OVERTRADING", "LOSS_AVERSION", "REVENGE_TRADING")]
    profile = compute_risk_profile(scenario_b_trades, biases)

    assert profile.level == "LOW"
    assert profile.pnl_trend == "POSITIVE"
    assert profile.reasons == []
    assert [r.ticker for r in profile.recommendations][:2] == ["NBI Canadian Equity ETF", "NBI Global Equity ETF"]


def test_risk_profile_sorts_trades(make_trade):
    ordered = [make_trade(i, pnl=p) for i, p in enumerate([-10] * 5 + [10] * 5)]
    shuffled = ordered[5:] + ordered[:5]
    biases = [_result("OVERTRADING", "LOW")]

    assert compute_risk_profile(shuffled, biases) == compute_risk_profile(ordered, biases)


def test_recommendations_are_copies():
    first = recommend_instruments("LOW")
    first[0].description = "changed"

    assert recommend_instruments("LOW")[0].description != "changed"
