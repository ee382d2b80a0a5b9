"""
Forecast Data Models

Pydantic models for historical SaaS metrics, forecast requests and the
per-month forecast results produced by the engine.
"""

import math
from datetime import date, datetime, timezone
from enum import Enum
from typing import Dict, List, Literal, Optional

import pandas as pd
from pydantic import BaseModel, ConfigDict, Field, field_validator


class ForecastTarget(str, Enum):
    """Which metric(s) a forecast should project"""

    REVENUE = "revenue"
    CUSTOMERS = "customers"
    BOTH = "both"


class HistoricalPoint(BaseModel):
    """One month of historical SaaS metrics."""

    date: date
    revenue: float = Field(..., ge=0)
    customers: float = Field(..., ge=0)
    new_customers: float = 0
    churned_customers: float = 0
    arpu: float = 0
    churn_rate: float = 0
    cac: float = 0


class ExternalFactors(BaseModel):
    """Market conditions applied to scenario bands."""

    market_growth: float = Field(default=0.0, description="Industry growth rate, e.g. 0.15")
    economic_index: float = Field(default=1.0, description="Economic health, 1 is best")
    competitive_pressure: float = Field(default=0.0, description="Competition level, 1 is high")
    seasonality: Optional[List[float]] = Field(
        default=None, description="Seasonal factors indexed by calendar month"
    )


class CashFlowInputs(BaseModel):
    """Current cash position and cost structure."""

    cash_in_bank: float
    operating_expenses: float
    operating_expense_growth_rate: float = 0.0
    gross_margin_rate: float = Field(..., ge=0, le=1)


class ForecastRequest(BaseModel):
    """Input to the forecast pipeline."""

    series: List[HistoricalPoint]
    horizon_months: int = Field(..., ge=1, le=24)
    target: ForecastTarget = ForecastTarget.BOTH
    include_scenarios: bool = True
    include_external_factors: bool = True
    external_factors: Optional[ExternalFactors] = None
    cash_flow_inputs: Optional[CashFlowInputs] = None
    seed: Optional[int] = None
    as_of: Optional[date] = None

    @property
    def forecasts_revenue(self) -> bool:
        return self.target in (ForecastTarget.REVENUE, ForecastTarget.BOTH)

    @property
    def forecasts_customers(self) -> bool:
        return self.target in (ForecastTarget.CUSTOMERS, ForecastTarget.BOTH)


class Range(BaseModel):
    optimistic: float
    pessimistic: float


class ScenarioValue(BaseModel):
    revenue: float
    customers: float


class Scenarios(BaseModel):
    optimistic: ScenarioValue
    realistic: ScenarioValue
    pessimistic: ScenarioValue


class ExternalFactorsImpact(BaseModel):
    """External factors expressed as percentages."""

    market_growth: float
    economic_index: float
    competitive_pressure: float
    seasonality: float


class CashFlowProjectionRow(BaseModel):
    month: int
    revenue: float
    expenses: float
    net_cash_flow: float
    cumulative_cash: float


class CashFlowMetrics(BaseModel):
    """Cash-flow and profitability figures for one forecast month."""

    model_config = ConfigDict(ser_json_inf_nan="constants")

    burn_rate: float
    cash_runway: float = Field(..., description="Months of cash left, inf when not burning")
    break_even_point: int = Field(..., description="Customers needed to cover expenses")
    monthly_profit: float
    gross_margin: float
    net_margin: float
    cash_flow_projection: List[CashFlowProjectionRow] = Field(default_factory=list)

    @property
    def is_burning_cash(self) -> bool:
        return self.burn_rate > 0 and not math.isinf(self.cash_runway)


class ComponentForecast(BaseModel):
    """Value produced by a single sub-forecaster for one month."""

    revenue: float = 0.0
    customers: float = 0.0


class ForecastPoint(BaseModel):
    """Forecast for a single future month."""

    model_config = ConfigDict(ser_json_inf_nan="constants")

    date: date
    revenue: float
    customers: float
    confidence: float = Field(..., ge=0, le=100)
    method: str
    revenue_range: Range
    customer_range: Range
    scenarios: Optional[Scenarios] = None
    risk_factors: List[str] = Field(default_factory=list)
    external_factors_impact: Optional[ExternalFactorsImpact] = None
    cash_flow: Optional[CashFlowMetrics] = None
    components: Dict[str, ComponentForecast] = Field(default_factory=dict)


class ValidationMetrics(BaseModel):
    """Forecast error metrics for one backtest fold or tracked record."""

    mape: float
    rmse: float
    mae: float
    bias: float
    accuracy: float = Field(..., ge=0, le=100)


class ActualValue(BaseModel):
    """Observed outcome used to score a forecast."""

    date: date
    revenue: float
    customers: float


class PredictionFeedback(BaseModel):
    user_rating: int = Field(..., ge=1, le=5)
    comments: str = ""
    actual_outcome: Literal["better", "worse", "as_expected"]


class PredictionRecord(BaseModel):
    """A stored forecast with optional actuals, accuracy and feedback."""

    model_config = ConfigDict(ser_json_inf_nan="constants")

    id: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    predictions: List[ForecastPoint]
    actuals: Optional[List[ActualValue]] = None
    accuracy: Optional[ValidationMetrics] = None
    feedback: Optional[PredictionFeedback] = None


def add_months(start: date, months: int) -> date:
    """Calendar month arithmetic, clamping to the last day of short months."""
    return (pd.Timestamp(start) + pd.DateOffset(months=months)).date()
