"""
Scenario & Interval Generator

Confidence intervals around an ensemble value and optimistic / realistic /
pessimistic scenario bands, optionally adjusted by external market factors.
"""

from datetime import date
from typing import Optional

from forecast_engine.data.schemas import (
    ExternalFactors,
    ExternalFactorsImpact,
    Range,
    ScenarioValue,
    Scenarios,
)

INTERVAL_SCALE = 0.3

REVENUE_BAND_MULTIPLIERS = {"optimistic": 1.25, "realistic": 1.0, "pessimistic": 0.75}
CUSTOMER_BAND_MULTIPLIERS = {"optimistic": 1.15, "realistic": 1.0, "pessimistic": 0.85}

# Market-growth sensitivity per band
REVENUE_MARKET_SENSITIVITY = {"optimistic": 0.5, "realistic": 0.2, "pessimistic": -0.2}
CUSTOMER_MARKET_SENSITIVITY = {"optimistic": 0.3, "realistic": 0.1, "pessimistic": -0.1}


def confidence_interval(value: float, confidence: float) -> Range:
    """
    Symmetric range of value * (100 - confidence)% * 0.3 around `value`.

    The pessimistic bound never goes below 0.
    """
    spread = value * ((100 - confidence) / 100) * INTERVAL_SCALE
    return Range(
        optimistic=round(value + spread),
        pessimistic=round(max(0.0, value - spread)),
    )


def external_multiplier(factors: ExternalFactors, market_sensitivity: float) -> float:
    """(1 + market_growth * k) * economic_index * (1 - competitive_pressure)"""
    return (
        (1 + factors.market_growth * market_sensitivity)
        * factors.economic_index
        * (1 - factors.competitive_pressure)
    )


def generate_scenarios(
    revenue: float,
    customers: float,
    external_factors: Optional[ExternalFactors] = None,
) -> Scenarios:
    """
    Build scenario bands around the ensemble values.

    Args:
        revenue: Ensemble revenue (the realistic band)
        customers: Ensemble customers (the realistic band)
        external_factors: Optional market conditions applied to every band

    Returns:
        Scenarios with rounded values
    """
    bands = {}
    for band in ("optimistic", "realistic", "pessimistic"):
        band_revenue = revenue * REVENUE_BAND_MULTIPLIERS[band]
        band_customers = customers * CUSTOMER_BAND_MULTIPLIERS[band]

        if external_factors is not None:
            band_revenue *= external_multiplier(external_factors, REVENUE_MARKET_SENSITIVITY[band])
            band_customers *= external_multiplier(external_factors, CUSTOMER_MARKET_SENSITIVITY[band])

        bands[band] = ScenarioValue(
            revenue=round(max(0.0, band_revenue)),
            customers=round(max(0.0, band_customers)),
        )

    return Scenarios(**bands)


def external_factors_impact(factors: ExternalFactors, target_date: date) -> ExternalFactorsImpact:
    """Express the external factors as percentages for a target month."""
    seasonality = 0.0
    if factors.seasonality and len(factors.seasonality) >= 12:
        seasonality = factors.seasonality[target_date.month - 1]

    return ExternalFactorsImpact(
        market_growth=factors.market_growth * 100,
        economic_index=factors.economic_index * 100,
        competitive_pressure=factors.competitive_pressure * 100,
        seasonality=seasonality * 100,
    )
