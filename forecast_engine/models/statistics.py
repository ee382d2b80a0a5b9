"""
Statistical Estimators

Numeric primitives shared by every forecasting path: the ensemble,
scenario generation, cash-flow projection, Monte Carlo and validation
all derive trend, seasonality, volatility, momentum and growth from
these functions.

Degenerate inputs (too few points, zero denominators) return 0 instead
of raising.
"""

from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

TREND_WEIGHT_BASE = 1.1
MIN_POINTS_FOR_SEASONALITY = 12
MONTHLY_SEASONAL_WEIGHT = 0.7
QUARTERLY_SEASONAL_WEIGHT = 0.3


def _as_array(values: Sequence[float]) -> np.ndarray:
    return np.asarray(values, dtype=float)


def weighted_trend(values: Sequence[float]) -> float:
    """
    Weighted least-squares slope over index positions.

    Point i carries weight 1.1**i, so recent months dominate the fit.

    Args:
        values: Series, oldest first

    Returns:
        Slope per period, 0 for fewer than 2 points or a singular fit
    """
    y = _as_array(values)
    n = len(y)
    if n < 2:
        return 0.0

    x = np.arange(n, dtype=float)
    w = np.power(TREND_WEIGHT_BASE, x)

    total_weight = w.sum()
    sum_x = (w * x).sum()
    sum_y = (w * y).sum()
    sum_xy = (w * x * y).sum()
    sum_xx = (w * x * x).sum()

    denominator = total_weight * sum_xx - sum_x * sum_x
    if denominator == 0:
        return 0.0

    return float((total_weight * sum_xy - sum_x * sum_y) / denominator)


def seasonal_factors(
    values: Sequence[float],
    months: Optional[Sequence[int]] = None,
) -> np.ndarray:
    """
    Calendar-aligned seasonal factors.

    Each value is keyed by its month of year (1-12). The monthly factor
    for a calendar month is the mean of its values over the overall mean,
    minus one; the quarterly factor is computed the same way per calendar
    quarter. The two are blended 0.7 monthly / 0.3 quarterly.

    Args:
        values: Series, oldest first
        months: Month of year (1-12) of each value. When omitted the
            series is assumed to start in January.

    Returns:
        Array of 12 factors, index 0 is January. All zeros for fewer than
        12 points or a zero mean.
    """
    y = _as_array(values)
    n = len(y)
    if n < MIN_POINTS_FOR_SEASONALITY:
        return np.zeros(12)

    overall_mean = y.mean()
    if overall_mean == 0:
        return np.zeros(12)

    if months is None:
        month_index = np.arange(n) % 12
    else:
        month_index = np.asarray(months, dtype=int) - 1
    quarter_index = month_index // 3

    monthly = np.zeros(12)
    for m in range(12):
        mask = month_index == m
        if mask.any():
            monthly[m] = y[mask].mean() / overall_mean - 1

    quarterly = np.zeros(4)
    for q in range(4):
        mask = quarter_index == q
        if mask.any():
            quarterly[q] = y[mask].mean() / overall_mean - 1

    return np.array([
        monthly[m] * MONTHLY_SEASONAL_WEIGHT + quarterly[m // 3] * QUARTERLY_SEASONAL_WEIGHT
        for m in range(12)
    ])


def volatility(values: Sequence[float]) -> float:
    """Population standard deviation of period-over-period relative returns."""
    y = _as_array(values)
    if len(y) < 2:
        return 0.0

    previous = y[:-1]
    current = y[1:]
    valid = previous > 0
    if not valid.any():
        return 0.0

    returns = (current[valid] - previous[valid]) / previous[valid]
    return float(np.std(returns))


def momentum(values: Sequence[float]) -> float:
    """
    Relative change between the mean of the last 3 points and the mean
    of the (up to) 3 points before them.
    """
    y = _as_array(values)
    if len(y) < 4:
        return 0.0

    recent = y[-3:]
    older = y[-6:-3]
    older_mean = older.mean()
    if older_mean == 0:
        return 0.0

    return float((recent.mean() - older_mean) / older_mean)


def growth_rate(values: Sequence[float]) -> float:
    """Compound per-period growth implied by the first and last values."""
    y = _as_array(values)
    if len(y) < 2:
        return 0.0

    first, last = y[0], y[-1]
    if first <= 0 or last < 0:
        return 0.0

    return float((last / first) ** (1 / (len(y) - 1)) - 1)


def coefficient_of_variation(values: Sequence[float]) -> float:
    y = _as_array(values)
    if len(y) == 0:
        return 0.0
    mean = y.mean()
    if mean == 0:
        return 0.0
    return float(np.std(y) / mean)


def trend_stability(values: Sequence[float]) -> float:
    """
    1 minus the coefficient of variation of two-step trends.

    Returns 0.5 when there are fewer than 4 points or the trends average
    to zero; never below 0.
    """
    y = _as_array(values)
    if len(y) < 4:
        return 0.5

    short_trends = (y[2:] - y[:-2]) / 2
    trend_mean = short_trends.mean()
    if trend_mean == 0:
        return 0.5

    trend_cv = np.std(short_trends) / abs(trend_mean)
    return float(max(0.0, 1 - trend_cv))


def seasonality_strength(
    values: Sequence[float],
    months: Optional[Sequence[int]] = None,
) -> float:
    """Largest absolute seasonal factor; 0 below 12 points."""
    if len(values) < MIN_POINTS_FOR_SEASONALITY:
        return 0.0
    return float(np.max(np.abs(seasonal_factors(values, months))))


@dataclass(frozen=True)
class SeriesStatistics:
    """Estimates for one metric, computed once and shared by the sub-forecasters."""

    trend: float
    seasonality: np.ndarray
    volatility: float
    momentum: float
    growth_rate: float

    @classmethod
    def from_values(
        cls,
        values: Sequence[float],
        months: Optional[Sequence[int]] = None,
    ) -> "SeriesStatistics":
        return cls(
            trend=weighted_trend(values),
            seasonality=seasonal_factors(values, months),
            volatility=volatility(values),
            momentum=momentum(values),
            growth_rate=growth_rate(values),
        )

    def seasonal_factor(self, month: int) -> float:
        """Factor for a calendar month (1-12)."""
        return float(self.seasonality[(month - 1) % 12])
