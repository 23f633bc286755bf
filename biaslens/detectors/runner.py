"""Run every bias detector over one metrics snapshot."""

from biaslens.detectors.loss_aversion import detect_loss_aversion
from biaslens.detectors.overtrading import detect_overtrading
from biaslens.detectors.revenge import detect_revenge_trading
from biaslens.models.schemas import BiasResult, SummaryMetrics

DETECTORS = (detect_overtrading, detect_loss_aversion, detect_revenge_trading)


def detect_biases(metrics: SummaryMetrics) -> list[BiasResult]:
    """Deterministic, explainable detection in fixed order: overtrading, loss aversion, revenge."""
    return [detector(metrics) for detector in DETECTORS]
