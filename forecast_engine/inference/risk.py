"""
Risk Identifier

Deterministic rules that annotate each forecast point with the reasons it
may be unreliable.
"""

from typing import List, Optional

from forecast_engine.data.schemas import ExternalFactors

LIMITED_HISTORY = "Limited historical data (< 6 months)"
NO_SEASONALITY = "Insufficient data for seasonality analysis"
LONG_TERM = "Long-term prediction (> 6 months)"
VERY_LONG_TERM = "Very long-term prediction (> 12 months)"
LOW_CONFIDENCE = "Low prediction confidence"
VERY_LOW_CONFIDENCE = "Very low prediction confidence"
HIGH_VOLATILITY = "High revenue volatility"
HIGH_COMPETITION = "High competitive pressure"
ECONOMIC_UNCERTAINTY = "Economic uncertainty"
SLOW_MARKET = "Slow market growth"
OUTDATED_DATA = "Outdated historical data"

LOW_CONFIDENCE_THRESHOLD = 60
VERY_LOW_CONFIDENCE_THRESHOLD = 40
HIGH_VOLATILITY_THRESHOLD = 0.3
HIGH_COMPETITION_THRESHOLD = 0.7
ECONOMIC_UNCERTAINTY_THRESHOLD = 0.6
SLOW_MARKET_THRESHOLD = 0.05
MAX_DATA_AGE_MONTHS = 3


def identify_risk_factors(
    series_length: int,
    horizon: int,
    confidence: float,
    revenue_volatility: float,
    data_age: int,
    external_factors: Optional[ExternalFactors] = None,
) -> List[str]:
    """
    Args:
        series_length: Number of historical points
        horizon: Months ahead of the forecast point
        confidence: Dynamic confidence of the point
        revenue_volatility: Volatility of the revenue series
        data_age: Months since the last observation
        external_factors: Market conditions, when supplied

    Returns:
        Risk messages in a fixed order
    """
    risks: List[str] = []

    if series_length < 6:
        risks.append(LIMITED_HISTORY)
    if series_length < 12:
        risks.append(NO_SEASONALITY)

    if horizon > 6:
        risks.append(LONG_TERM)
    if horizon > 12:
        risks.append(VERY_LONG_TERM)

    if confidence < LOW_CONFIDENCE_THRESHOLD:
        risks.append(LOW_CONFIDENCE)
    if confidence < VERY_LOW_CONFIDENCE_THRESHOLD:
        risks.append(VERY_LOW_CONFIDENCE)

    if revenue_volatility > HIGH_VOLATILITY_THRESHOLD:
        risks.append(HIGH_VOLATILITY)

    if external_factors is not None:
        if external_factors.competitive_pressure > HIGH_COMPETITION_THRESHOLD:
            risks.append(HIGH_COMPETITION)
        if external_factors.economic_index < ECONOMIC_UNCERTAINTY_THRESHOLD:
            risks.append(ECONOMIC_UNCERTAINTY)
        if external_factors.market_growth < SLOW_MARKET_THRESHOLD:
            risks.append(SLOW_MARKET)

    if data_age > MAX_DATA_AGE_MONTHS:
        risks.append(OUTDATED_DATA)

    return risks
