"""
Cash-Flow Projector

Burn rate, runway, break-even customer count and margins for forecast
points, plus a standalone multi-month cash-flow projection.

Runway is `math.inf` when the business is not burning cash. Zero revenue
per customer gives a break-even point of 0 rather than an error.
"""

import math
from typing import List, Optional

import structlog
from pydantic import BaseModel, ConfigDict, Field

from forecast_engine.data.preprocessing import SeriesPreprocessor
from forecast_engine.data.schemas import (
    CashFlowInputs,
    CashFlowMetrics,
    CashFlowProjectionRow,
    HistoricalPoint,
)
from forecast_engine.exceptions import InsufficientDataError
from forecast_engine.models.statistics import weighted_trend

logger = structlog.get_logger(__name__)

MIN_POINTS = 3
PROJECTION_MONTHS = 12


class BurnRatePoint(BaseModel):
    month: int
    burn_rate: float
    cumulative_burn: float


class CashRunwayAnalysis(BaseModel):
    model_config = ConfigDict(ser_json_inf_nan="constants")

    current_runway: float
    projected_runway: List[float] = Field(default_factory=list)
    break_even_month: Optional[int] = None


class BreakEvenAnalysis(BaseModel):
    current_break_even_point: int
    projected_break_even_point: List[int] = Field(default_factory=list)
    months_to_break_even: Optional[int] = None


class CashFlowForecast(BaseModel):
    """Result of a standalone cash-flow projection."""

    burn_rate_forecast: List[BurnRatePoint]
    cash_runway_analysis: CashRunwayAnalysis
    break_even_analysis: BreakEvenAnalysis
    summary: str


def projected_expenses(inputs: CashFlowInputs, month: int) -> float:
    """Operating expenses compounded for `month` months."""
    return inputs.operating_expenses * (1 + inputs.operating_expense_growth_rate) ** month


def runway(cash: float, burn_rate: float) -> float:
    """Months of cash left; infinite when not burning."""
    return cash / burn_rate if burn_rate > 0 else math.inf


def break_even_point(
    revenue: float,
    customers: float,
    expenses: float,
    gross_margin_rate: float,
) -> int:
    """
    Customers needed for gross profit to cover `expenses`.

    0 when there are no customers to price from or no gross profit per customer.
    """
    if customers <= 0:
        return 0
    gross_profit_per_customer = (revenue / max(customers, 1)) * gross_margin_rate
    if gross_profit_per_customer <= 0:
        return 0
    return math.ceil(expenses / gross_profit_per_customer)


def _round_tenth(value: float) -> float:
    return value if math.isinf(value) else round(value, 1)


def cash_flow_projection(
    inputs: CashFlowInputs,
    last_revenue: float,
    revenue_trend: float,
    start_month: int,
    months: int = PROJECTION_MONTHS,
) -> List[CashFlowProjectionRow]:
    """
    Rolling projection for the `months` months after `start_month`.

    Revenue follows the historical trend from the last observation and
    cumulative cash starts from the current cash in bank.
    """
    rows = []
    cumulative_cash = inputs.cash_in_bank

    for offset in range(1, months + 1):
        month_index = start_month + offset
        revenue = last_revenue + revenue_trend * month_index
        expenses = projected_expenses(inputs, month_index)
        net_cash_flow = revenue * inputs.gross_margin_rate - expenses
        cumulative_cash += net_cash_flow

        rows.append(CashFlowProjectionRow(
            month=month_index,
            revenue=round(revenue),
            expenses=round(expenses),
            net_cash_flow=round(net_cash_flow),
            cumulative_cash=round(cumulative_cash),
        ))

    return rows


def cash_flow_metrics(
    revenue: float,
    customers: float,
    horizon: int,
    inputs: CashFlowInputs,
    last_revenue: float,
    revenue_trend: float,
) -> CashFlowMetrics:
    """
    Profitability of one forecast month.

    Args:
        revenue: Forecast revenue for the month
        customers: Forecast customers for the month
        horizon: Months ahead of the last observation
        inputs: Cash position and cost structure
        last_revenue: Last preprocessed historical revenue
        revenue_trend: Trend of the preprocessed revenue series

    Returns:
        CashFlowMetrics with currency rounded to whole units and runway
        and margins to one decimal
    """
    expenses = projected_expenses(inputs, horizon)
    gross_profit = revenue * inputs.gross_margin_rate
    net_profit = gross_profit - expenses
    burn_rate = -net_profit

    gross_margin = (gross_profit / revenue) * 100 if revenue > 0 else 0.0
    net_margin = (net_profit / revenue) * 100 if revenue > 0 else 0.0

    return CashFlowMetrics(
        burn_rate=round(burn_rate),
        cash_runway=_round_tenth(runway(inputs.cash_in_bank, burn_rate)),
        break_even_point=break_even_point(revenue, customers, expenses, inputs.gross_margin_rate),
        monthly_profit=round(net_profit),
        gross_margin=round(gross_margin, 1),
        net_margin=round(net_margin, 1),
        cash_flow_projection=cash_flow_projection(inputs, last_revenue, revenue_trend, horizon),
    )


def project_cash_flow(
    series: List[HistoricalPoint],
    horizon_months: int,
    inputs: CashFlowInputs,
) -> CashFlowForecast:
    """
    Project burn, runway and break-even month by month.

    Revenue and customers follow their weighted trends from the last
    preprocessed observation. Remaining cash for the runway of month m is
    the cash in bank minus the burn accumulated up to m.

    Raises:
        InsufficientDataError: Fewer than 3 historical points
    """
    if len(series) < MIN_POINTS:
        raise InsufficientDataError(MIN_POINTS, len(series), "cash flow projection")

    cleaned = SeriesPreprocessor().transform(series)
    revenues = [p.revenue for p in cleaned]
    customers = [p.customers for p in cleaned]

    revenue_trend = weighted_trend(revenues)
    customer_trend = weighted_trend(customers)
    last_revenue = revenues[-1]
    last_customers = customers[-1]

    burn_forecast: List[BurnRatePoint] = []
    projected_runway: List[float] = []
    projected_break_even: List[int] = []
    cumulative_burn = 0.0
    break_even_month: Optional[int] = None

    for month in range(1, horizon_months + 1):
        revenue = last_revenue + revenue_trend * month
        month_customers = last_customers + customer_trend * month
        expenses = projected_expenses(inputs, month)

        net_profit = revenue * inputs.gross_margin_rate - expenses
        burn_rate = -net_profit
        cumulative_burn += burn_rate

        burn_forecast.append(BurnRatePoint(
            month=month,
            burn_rate=round(burn_rate),
            cumulative_burn=round(cumulative_burn),
        ))
        projected_runway.append(
            _round_tenth(runway(inputs.cash_in_bank - cumulative_burn, burn_rate))
        )
        projected_break_even.append(
            break_even_point(revenue, month_customers, expenses, inputs.gross_margin_rate)
        )

        if break_even_month is None and net_profit >= 0:
            break_even_month = month

    current_burn = inputs.operating_expenses - last_revenue * inputs.gross_margin_rate
    current_runway = _round_tenth(runway(inputs.cash_in_bank, current_burn))
    current_break_even = break_even_point(
        last_revenue, last_customers, inputs.operating_expenses, inputs.gross_margin_rate
    )

    projected = f"{break_even_month} months" if break_even_month else "Not reached in forecast period"
    summary = "\n".join([
        "Cash Flow Analysis:",
        f"    • Current Burn Rate: ${round(current_burn):,}/month",
        f"    • Current Cash Runway: {current_runway} months",
        f"    • Current Break-Even Point: {current_break_even} customers",
        f"    • Projected Break-Even: {projected}",
        f"    • Total Cash Burn ({horizon_months} months): ${round(cumulative_burn):,}",
    ])

    logger.info(
        "cash_flow_projected",
        horizon=horizon_months,
        break_even_month=break_even_month,
        current_runway=current_runway,
    )

    return CashFlowForecast(
        burn_rate_forecast=burn_forecast,
        cash_runway_analysis=CashRunwayAnalysis(
            current_runway=current_runway,
            projected_runway=projected_runway,
            break_even_month=break_even_month,
        ),
        break_even_analysis=BreakEvenAnalysis(
            current_break_even_point=current_break_even,
            projected_break_even_point=projected_break_even,
            months_to_break_even=break_even_month,
        ),
        summary=summary,
    )
