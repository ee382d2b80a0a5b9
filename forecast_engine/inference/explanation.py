"""
Forecast Explanation

Describes why a forecast looks the way it does: which factors drive it,
what it assumes, where it is weak, and what to do about it. Also renders
a plain-text summary of a forecast run.
"""

from typing import List, Optional

import numpy as np
from pydantic import BaseModel, Field

from forecast_engine.data.preprocessing import SeriesPreprocessor
from forecast_engine.data.schemas import (
    CashFlowInputs,
    ExternalFactors,
    ForecastPoint,
    ForecastRequest,
    HistoricalPoint,
)
from forecast_engine.inference.confidence import data_age_months
from forecast_engine.inference.scenarios import external_factors_impact
from forecast_engine.models import statistics as stats


class ConfidenceFactors(BaseModel):
    data_quality: float
    trend_stability: float
    seasonality_strength: float
    volatility_impact: float
    external_factors: float


class KeyDriver(BaseModel):
    factor: str
    impact: float
    explanation: str


class ModelExplanation(BaseModel):
    prediction_method: str
    confidence_factors: ConfidenceFactors
    key_drivers: List[KeyDriver] = Field(default_factory=list)
    assumptions: List[str] = Field(default_factory=list)
    limitations: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)


def data_quality_score(series: List[HistoricalPoint]) -> float:
    """
    Score the input series from 0 to 100.

    Penalizes short histories, revenue and customer variability, and
    months with missing (zero) values.
    """
    n = len(series)
    if n == 0:
        return 0.0

    score = 100.0
    if n < 6:
        score -= 30
    elif n < 12:
        score -= 20
    elif n < 24:
        score -= 10

    revenue_cv = stats.coefficient_of_variation([p.revenue for p in series])
    if revenue_cv > 0.6:
        score -= 25
    elif revenue_cv > 0.4:
        score -= 15
    elif revenue_cv > 0.2:
        score -= 10

    customer_cv = stats.coefficient_of_variation([p.customers for p in series])
    if customer_cv > 0.6:
        score -= 20
    elif customer_cv > 0.4:
        score -= 10
    elif customer_cv > 0.2:
        score -= 5

    missing = sum(1 for p in series if not p.revenue or not p.customers)
    score -= (missing / n) * 30

    return max(0.0, min(100.0, score))


def _key_drivers(
    series: List[HistoricalPoint],
    external: Optional[ExternalFactors],
    cash_flow_inputs: Optional[CashFlowInputs],
) -> List[KeyDriver]:
    revenues = [p.revenue for p in series]
    months = [p.date.month for p in series]

    revenue_trend = stats.weighted_trend(revenues)
    customer_trend = stats.weighted_trend([p.customers for p in series])

    drivers = [
        KeyDriver(
            factor="Revenue Trend",
            impact=abs(revenue_trend) * 100,
            explanation=(
                f"Historical revenue shows a {'positive' if revenue_trend > 0 else 'negative'} "
                f"trend of ${abs(revenue_trend):,.0f}/month"
            ),
        ),
        KeyDriver(
            factor="Customer Growth",
            impact=abs(customer_trend) * 10,
            explanation=(
                f"Customer base is {'growing' if customer_trend > 0 else 'declining'} "
                f"by {abs(customer_trend):.1f} customers/month"
            ),
        ),
    ]

    seasonality = stats.seasonality_strength(revenues, months)
    if seasonality > 0.1:
        drivers.append(KeyDriver(
            factor="Seasonality",
            impact=seasonality * 100,
            explanation=f"Strong seasonal patterns detected with {seasonality * 100:.1f}% variation",
        ))

    if external is not None:
        if external.market_growth > 0.1:
            drivers.append(KeyDriver(
                factor="Market Growth",
                impact=external.market_growth * 100,
                explanation=f"Market growing at {external.market_growth * 100:.1f}% annually",
            ))
        if external.competitive_pressure > 0.5:
            drivers.append(KeyDriver(
                factor="Competition",
                impact=external.competitive_pressure * 100,
                explanation=(
                    f"High competitive pressure ({external.competitive_pressure * 100:.1f}%) "
                    "affecting growth"
                ),
            ))

    if cash_flow_inputs is not None and series:
        burn = cash_flow_inputs.operating_expenses - series[-1].revenue * cash_flow_inputs.gross_margin_rate
        if burn > 0:
            drivers.append(KeyDriver(
                factor="Cash Burn",
                impact=min(100.0, burn / 10000),
                explanation=f"Monthly burn rate of ${burn:,.0f} impacts growth capacity",
            ))

    return sorted(drivers, key=lambda d: d.impact, reverse=True)


def _assumptions(series: List[HistoricalPoint], external: Optional[ExternalFactors]) -> List[str]:
    assumptions = [
        "Historical trends will continue in the near term",
        "Current business model and pricing remain stable",
        "No major market disruptions or competitive changes",
    ]
    if len(series) < 12:
        assumptions.append("Limited historical data - predictions based on short-term trends")
    if external is not None:
        if external.market_growth:
            assumptions.append(
                f"Market growth rate of {external.market_growth * 100:.1f}% will be maintained"
            )
        if external.economic_index < 0.7:
            assumptions.append("Economic conditions may impact customer acquisition and retention")
    return assumptions


def _limitations(
    series: List[HistoricalPoint],
    point: ForecastPoint,
    revenue_volatility: float,
    data_age: Optional[int],
) -> List[str]:
    limitations = []
    if len(series) < 6:
        limitations.append("Limited historical data reduces prediction accuracy")
    if point.confidence < 70:
        limitations.append("Low confidence score indicates high uncertainty")
    if revenue_volatility > 0.3:
        limitations.append("High revenue volatility makes predictions less reliable")
    if data_age is not None and data_age > 3:
        limitations.append("Outdated historical data may not reflect current market conditions")
    limitations.append("Predictions assume no major business model changes")
    limitations.append("External factors (economic, competitive) may change unpredictably")
    return limitations


def _recommendations(
    series: List[HistoricalPoint],
    point: ForecastPoint,
    drivers: List[KeyDriver],
    revenue_volatility: float,
) -> List[str]:
    recommendations = []
    if len(series) < 12:
        recommendations.append("Collect more historical data to improve prediction accuracy")
    if point.confidence < 70:
        recommendations.append("Consider multiple scenarios and stress test assumptions")

    if drivers:
        top = drivers[0]
        if top.factor == "Revenue Trend" and top.impact < 50:
            recommendations.append("Focus on revenue growth strategies to improve predictions")
        elif top.factor == "Customer Growth" and top.impact < 30:
            recommendations.append("Invest in customer acquisition to strengthen growth trends")
        elif top.factor == "Competition" and top.impact > 70:
            recommendations.append("Develop competitive differentiation strategies")

    if revenue_volatility > 0.3:
        recommendations.append("Implement revenue smoothing strategies to reduce volatility")

    recommendations.extend([
        "Monitor actual performance vs. predictions monthly",
        "Update predictions with new data regularly",
        "Consider external market factors in decision making",
    ])
    return recommendations


def explain_prediction(request: ForecastRequest, point: ForecastPoint) -> ModelExplanation:
    """
    Explain one forecast point in terms of the request it came from.

    Args:
        request: The request the forecast was generated for
        point: A forecast point from that request

    Returns:
        ModelExplanation with drivers sorted by impact, largest first
    """
    series = SeriesPreprocessor().transform(request.series)
    revenues = [p.revenue for p in series]
    months = [p.date.month for p in series]

    revenue_volatility = stats.volatility(revenues)
    impact = external_factors_impact(request.external_factors or ExternalFactors(), point.date)

    data_age = None
    if request.as_of is not None and series:
        data_age = data_age_months(series[-1].date, request.as_of)

    drivers = _key_drivers(series, request.external_factors, request.cash_flow_inputs)

    return ModelExplanation(
        prediction_method=point.method,
        confidence_factors=ConfidenceFactors(
            data_quality=data_quality_score(series),
            trend_stability=stats.trend_stability(revenues),
            seasonality_strength=stats.seasonality_strength(revenues, months),
            volatility_impact=revenue_volatility,
            external_factors=float(np.mean([
                impact.market_growth,
                impact.economic_index,
                impact.competitive_pressure,
                impact.seasonality,
            ])),
        ),
        key_drivers=drivers,
        assumptions=_assumptions(series, request.external_factors),
        limitations=_limitations(series, point, revenue_volatility, data_age),
        recommendations=_recommendations(series, point, drivers, revenue_volatility),
    )


def _percent_change(first: float, last: float) -> float:
    if first == 0:
        return 0.0
    return (last - first) / first * 100


def generate_summary(points: List[ForecastPoint]) -> str:
    """Plain-text summary of a forecast run."""
    if not points:
        return "No predictions available"

    first, last = points[0], points[-1]
    total_revenue = sum(p.revenue for p in points)
    avg_confidence = float(np.mean([p.confidence for p in points]))

    lines = [
        "Prediction Summary:",
        f"    • Period: {first.date.isoformat()} to {last.date.isoformat()}",
        f"    • Total Revenue: ${total_revenue:,.0f}",
        f"    • Revenue Growth: {_percent_change(first.revenue, last.revenue):.1f}%",
        f"    • Customer Growth: {_percent_change(first.customers, last.customers):.1f}%",
        f"    • Average Confidence: {avg_confidence:.1f}%",
        f"    • Method: {first.method}",
    ]

    if first.cash_flow is not None:
        burn_rates = [p.cash_flow.burn_rate if p.cash_flow else 0.0 for p in points]
        runways = [p.cash_flow.cash_runway if p.cash_flow else 0.0 for p in points]
        avg_runway = float(np.mean(runways))
        runway_text = "unlimited" if np.isinf(avg_runway) else f"{round(avg_runway, 1)} months"
        lines.append(f"    • Average Burn Rate: ${np.mean(burn_rates):,.0f}/month")
        lines.append(f"    • Average Cash Runway: {runway_text}")

    return "\n".join(lines)
