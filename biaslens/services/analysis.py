"""Core analysis service: metrics, bias verdicts, risk score and profile in one pass."""

from datetime import timezone, tzinfo

from biaslens.core.logging import logger
from biaslens.models.schemas import AnalysisResult, BiasResult, SummaryMetrics, Trade
from biaslens.services.brokerage import compare_brokerages, savings_message
from biaslens.services.metrics import compute_metrics
from biaslens.services.risk import compute_overall_risk_score, compute_risk_profile

# Snapshots sent back by clients may list a bias without its severity
DEFAULT_SEVERITY = "MEDIUM"

MISSING_FIELD_LABELS = {
    "entry_price/exit_price": "entry/exit prices",
    "account_balance": "account balance",
    "qty/position_size": "quantity/position size",
}


def bias_results_from_metrics(metrics: SummaryMetrics) -> list[BiasResult]:
    """Read the verdicts attached to a metrics snapshot back out as BiasResult objects."""
    return [
        BiasResult(
            bias=bias,
            severity=metrics.severities.get(bias, DEFAULT_SEVERITY),
            evidence=list(metrics.evidence.get(bias, ())),
            score=metrics.bias_scores.get(bias, 0),
        )
        for bias in metrics.detected_biases
    ]


def completeness_warnings(metrics: SummaryMetrics) -> list[str]:
    return [
        f"Missing {MISSING_FIELD_LABELS.get(field, field)} on most trades; "
        "analysis will be limited for some bias signals."
        for field in metrics.data_completeness.missing_fields
    ]


def analyze_trades(trades: list[Trade], tz: tzinfo = timezone.utc) -> AnalysisResult:
    """
    Run complete analysis on a validated trade batch.

    Returns AnalysisResult with:
    - metrics: SummaryMetrics snapshot with detection attached
    - bias_results: one verdict per bias type
    - overall_risk_score: 0-100 severity-weighted score
    - risk_profile: behavioural risk level, reasons and instrument ideas
    - warnings: data-completeness notes for the UI
    - brokerage_comparison: illustrative annual fee estimates
    - brokerage_savings_message: saving versus the most expensive schedule, or ""

    Raises EmptyInputError for an empty batch.
    """
    metrics = compute_metrics(trades, tz=tz)
    bias_results = bias_results_from_metrics(metrics)
    risk_score = compute_overall_risk_score(bias_results)
    risk_profile = compute_risk_profile(trades, bias_results)
    brokerage = compare_brokerages(metrics)

    logger.info(
        "Analysis complete: trades=%d window=%s severities=%s score=%d level=%s",
        metrics.total_trades,
        metrics.trading_window,
        metrics.severities,
        risk_score,
        risk_profile.level,
    )

    return AnalysisResult(
        metrics=metrics,
        bias_results=bias_results,
        overall_risk_score=risk_score,
        risk_profile=risk_profile,
        warnings=completeness_warnings(metrics),
        brokerage_comparison=brokerage,
        brokerage_savings_message=savings_message(brokerage),
    )
