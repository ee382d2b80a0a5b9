"""
Confidence Engine

Scores how much a forecast can be trusted: a base score from the quality
of the historical series, then a per-horizon score that decays with
distance and volatility and rewards fresh data.
"""

from datetime import date
from typing import List

from forecast_engine.data.schemas import HistoricalPoint
from forecast_engine.models import statistics as stats

BASE_CONFIDENCE_MIN = 25.0
BASE_CONFIDENCE_MAX = 95.0
DYNAMIC_CONFIDENCE_MIN = 15.0
DYNAMIC_CONFIDENCE_MAX = 95.0

MAX_DISTANCE_PENALTY = 20.0
VOLATILITY_PENALTY_SCALE = 10.0
MAX_RECENCY_BONUS = 5.0
MISSING_DATA_PENALTY = 25.0
SEASONALITY_BONUS = 5.0
SEASONALITY_BONUS_THRESHOLD = 0.3


def _clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(upper, value))


def _length_penalty(n: int) -> float:
    if n < 6:
        return 25.0
    if n < 12:
        return 15.0
    if n < 24:
        return 5.0
    return 0.0


def _cv_penalty(cv: float, tiers: tuple) -> float:
    """tiers: penalties for CV above 0.6, 0.4 and 0.2."""
    high, medium, low = tiers
    if cv > 0.6:
        return high
    if cv > 0.4:
        return medium
    if cv > 0.2:
        return low
    return 0.0


def base_confidence(series: List[HistoricalPoint]) -> float:
    """
    Data-quality confidence for a series, clamped to [25, 95].

    Starts at 100 and subtracts penalties for a short history, revenue
    and customer variability, unstable trends and missing (zero) values.
    Strong seasonality adds a small bonus since it makes months easier to
    place.
    """
    n = len(series)
    if n == 0:
        return BASE_CONFIDENCE_MIN

    revenues = [p.revenue for p in series]
    customers = [p.customers for p in series]
    months = [p.date.month for p in series]

    confidence = 100.0
    confidence -= _length_penalty(n)
    confidence -= _cv_penalty(stats.coefficient_of_variation(revenues), (20.0, 15.0, 10.0))
    confidence -= _cv_penalty(stats.coefficient_of_variation(customers), (15.0, 10.0, 5.0))

    stability = stats.trend_stability(revenues)
    if stability < 0.7:
        confidence -= 10
    elif stability < 0.8:
        confidence -= 5

    missing = sum(1 for p in series if not p.revenue or not p.customers)
    confidence -= (missing / n) * MISSING_DATA_PENALTY

    if stats.seasonality_strength(revenues, months) > SEASONALITY_BONUS_THRESHOLD:
        confidence += SEASONALITY_BONUS

    return _clamp(confidence, BASE_CONFIDENCE_MIN, BASE_CONFIDENCE_MAX)


def data_age_months(last_date: date, as_of: date) -> int:
    """Whole calendar months between the last observation and `as_of`."""
    return (as_of.year - last_date.year) * 12 + (as_of.month - last_date.month)


def dynamic_confidence(
    base: float,
    horizon: int,
    total_horizon: int,
    revenue_volatility: float,
    data_age: int,
) -> float:
    """
    Confidence for one forecast month, clamped to [15, 95].

    Args:
        base: Base confidence of the series
        horizon: Months ahead of this forecast point (1-based)
        total_horizon: Number of months forecast
        revenue_volatility: Volatility of the preprocessed revenue series
        data_age: Months since the last observation
    """
    distance_penalty = (horizon / max(total_horizon, 1)) * MAX_DISTANCE_PENALTY
    volatility_penalty = revenue_volatility * VOLATILITY_PENALTY_SCALE
    recency_bonus = min(MAX_RECENCY_BONUS, max(0.0, MAX_RECENCY_BONUS - data_age))

    return _clamp(
        base - distance_penalty - volatility_penalty + recency_bonus,
        DYNAMIC_CONFIDENCE_MIN,
        DYNAMIC_CONFIDENCE_MAX,
    )
