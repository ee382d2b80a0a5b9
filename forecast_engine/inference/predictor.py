"""
Forecast Pipeline

Turns a short historical series into per-month ensemble forecasts with
confidence, intervals, scenarios, risk annotations and optional cash-flow
metrics.

Pipeline:
    series -> preprocessing -> estimators -> sub-forecasters -> ensemble
           -> confidence -> scenarios / intervals / risks / cash flow
"""

from datetime import date
from typing import List, Optional

import numpy as np
import structlog

from forecast_engine.config import Settings, get_settings
from forecast_engine.data.preprocessing import SeriesPreprocessor
from forecast_engine.data.schemas import (
    ComponentForecast,
    ForecastPoint,
    ForecastRequest,
    HistoricalPoint,
    add_months,
)
from forecast_engine.exceptions import InsufficientDataError
from forecast_engine.finance.cash_flow import cash_flow_metrics
from forecast_engine.inference.confidence import (
    base_confidence,
    data_age_months,
    dynamic_confidence,
)
from forecast_engine.inference.risk import identify_risk_factors
from forecast_engine.inference.scenarios import (
    confidence_interval,
    external_factors_impact,
    generate_scenarios,
)
from forecast_engine.models.ensemble import (
    COMPONENTS,
    EnsembleCombiner,
    EnsembleWeights,
    WeightStore,
    get_weight_store,
)
from forecast_engine.models.statistics import SeriesStatistics
from forecast_engine.models.sub_forecasters import (
    CUSTOMER_MOMENTUM_WEIGHT,
    REVENUE_MOMENTUM_WEIGHT,
)

logger = structlog.get_logger(__name__)

MIN_POINTS = 3


class ForecastEngine:
    """
    Ensemble forecaster for monthly SaaS revenue and customers.

    Args:
        weights: Fixed ensemble weights. When omitted, each call reads a
            snapshot from `weight_store`.
        weight_store: Source of the current weights; defaults to the
            process-wide store.
        settings: Engine settings (activation, hidden layer widths)
    """

    def __init__(
        self,
        weights: Optional[EnsembleWeights] = None,
        weight_store: Optional[WeightStore] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self._weights = weights
        self.weight_store = weight_store
        if weights is None and weight_store is None:
            self.weight_store = get_weight_store()
        self.preprocessor = SeriesPreprocessor()

    def current_weights(self) -> EnsembleWeights:
        if self._weights is not None:
            return self._weights
        return self.weight_store.snapshot()

    def forecast(
        self,
        request: ForecastRequest,
        weights: Optional[EnsembleWeights] = None,
        rng: Optional[np.random.Generator] = None,
    ) -> List[ForecastPoint]:
        """
        Forecast `request.horizon_months` months past the last observation.

        Args:
            request: Series and options
            weights: Weight snapshot to use instead of the engine's own
            rng: Generator for the moving-average jitter; defaults to a
                PCG64 generator seeded from `request.seed`

        Returns:
            One ForecastPoint per month, oldest first

        Raises:
            InsufficientDataError: Fewer than 3 historical points
        """
        series = request.series
        if len(series) < MIN_POINTS:
            raise InsufficientDataError(MIN_POINTS, len(series), "forecast")

        weights = weights or self.current_weights()
        if rng is None:
            rng = np.random.default_rng(request.seed)

        cleaned = self.preprocessor.transform(series)
        points = self._forecast_clean(request, cleaned, weights, rng)

        logger.debug(
            "forecast_generated",
            horizon=request.horizon_months,
            target=request.target.value,
            points=len(points),
            history=len(series),
            weights_version=weights.version,
        )
        return points

    def _forecast_clean(
        self,
        request: ForecastRequest,
        cleaned: List[HistoricalPoint],
        weights: EnsembleWeights,
        rng: np.random.Generator,
    ) -> List[ForecastPoint]:
        combiner = EnsembleCombiner(
            weights,
            hidden_layers=self.settings.hidden_layers,
            activation=self.settings.activation_function,
        )

        revenues = np.array([p.revenue for p in cleaned])
        customers = np.array([p.customers for p in cleaned])
        months = [p.date.month for p in cleaned]

        revenue_stats = SeriesStatistics.from_values(revenues, months)
        customer_stats = SeriesStatistics.from_values(customers, months)

        last_date = cleaned[-1].date
        as_of = request.as_of or date.today()
        data_age = data_age_months(last_date, as_of)
        base = base_confidence(cleaned)

        external = request.external_factors
        horizon_total = request.horizon_months
        points: List[ForecastPoint] = []

        for h in range(1, horizon_total + 1):
            target_date = add_months(last_date, h)

            revenue = 0.0
            customer_count = 0.0
            components = {name: ComponentForecast() for name in COMPONENTS}

            if request.forecasts_revenue:
                result = combiner.combine(
                    revenues, h, revenue_stats, target_date.month, REVENUE_MOMENTUM_WEIGHT, rng
                )
                revenue = result.value
                for name, value in result.components.items():
                    components[name].revenue = round(value)

            if request.forecasts_customers:
                result = combiner.combine(
                    customers, h, customer_stats, target_date.month, CUSTOMER_MOMENTUM_WEIGHT, rng
                )
                customer_count = result.value
                for name, value in result.components.items():
                    components[name].customers = round(value)

            confidence = dynamic_confidence(
                base, h, horizon_total, revenue_stats.volatility, data_age
            )

            point = ForecastPoint(
                date=target_date,
                revenue=round(revenue),
                customers=round(customer_count),
                confidence=confidence,
                method=combiner.method_label,
                revenue_range=confidence_interval(revenue, confidence),
                customer_range=confidence_interval(customer_count, confidence),
                risk_factors=identify_risk_factors(
                    len(cleaned), h, confidence, revenue_stats.volatility, data_age, external
                ),
                components=components,
            )

            if request.include_scenarios:
                point.scenarios = generate_scenarios(revenue, customer_count, external)

            if request.include_external_factors and external is not None:
                point.external_factors_impact = external_factors_impact(external, target_date)

            if request.cash_flow_inputs is not None:
                point.cash_flow = cash_flow_metrics(
                    revenue,
                    customer_count,
                    h,
                    request.cash_flow_inputs,
                    last_revenue=float(revenues[-1]),
                    revenue_trend=revenue_stats.trend,
                )

            points.append(point)

        return points


def forecast(request: ForecastRequest) -> List[ForecastPoint]:
    """Forecast with the process-wide ensemble weights."""
    return ForecastEngine().forecast(request)
