"""Statistics utility functions."""

from typing import Optional


def percentile(values: list[float], p: float) -> float:
    """
    Lower-rank percentile: the element at floor((n - 1) * p / 100) of the
    sorted values. Never interpolates, so the result is always an observed value.
    """
    if not values:
        return 0.0
    sorted_vals = sorted(values)
    idx = int((len(sorted_vals) - 1) * (p / 100.0))
    return sorted_vals[idx]


def mean(values: list[float]) -> float:
    """Calculate mean."""
    if not values:
        return 0.0
    return sum(values) / len(values)


def mean_or_none(values: list[float], digits: int = 2) -> Optional[float]:
    """Rounded mean, or None when there is nothing to average."""
    if not values:
        return None
    return round(mean(values), digits)


def ratio_or_none(numerator: Optional[float], denominator: Optional[float], digits: int = 2) -> Optional[float]:
    """Rounded ratio, or None when either side is unknown or the denominator is not positive."""
    if numerator is None or denominator is None or denominator <= 0:
        return None
    return round(numerator / denominator, digits)
