"""
Tests for the Forecast Pipeline

Test Coverage:
- Result length and monthly dates
- Growth example: continuing trend within confidence bounds
- Ranges, scenarios, risk factors and cash flow on each point
- Seeded determinism and per-call weight snapshots
- Input validation
"""

from datetime import date

import pytest


class TestForecastShape:
    """Tests for the shape of the forecast result."""

    def test_length_and_monthly_dates(self, engine, growth_request, growth_series):
        from forecast_engine.data.schemas import add_months

        points = engine.forecast(growth_request)

        assert len(points) == 3
        assert [p.date for p in points] == [add_months(growth_series[-1].date, h) for h in (1, 2, 3)]

    def test_dates_clamp_to_month_end(self, engine, series_factory):
        from forecast_engine.data.schemas import ForecastRequest

        series = series_factory([100, 110, 120], [10, 11, 12], start=date(2024, 11, 30))
        points = engine.forecast(ForecastRequest(series=series, horizon_months=2, seed=1))

        # Last observation is 2025-01-30
        assert points[0].date == date(2025, 2, 28)
        assert points[1].date == date(2025, 3, 30)

    def test_long_horizon(self, engine, seasonal_series):
        from forecast_engine.data.schemas import ForecastRequest

        points = engine.forecast(ForecastRequest(series=seasonal_series, horizon_months=24, seed=3))

        assert len(points) == 24


class TestGrowthExample:
    """Six months of +4% revenue growth keep growing over a 3-month horizon."""

    def test_revenue_continues_increasing(self, engine, growth_request, growth_series):
        points = engine.forecast(growth_request)
        revenues = [p.revenue for p in points]

        assert revenues[0] > growth_series[-1].revenue
        assert all(later > earlier for earlier, later in zip(revenues, revenues[1:]))

    def test_confidence_bounds(self, engine, growth_request):
        for point in engine.forecast(growth_request):
            assert 25 <= point.confidence <= 95

    def test_revenue_only_target(self, engine, growth_request):
        points = engine.forecast(growth_request)

        assert all(p.customers == 0 for p in points)
        assert all(p.components["linear"].customers == 0 for p in points)

    def test_both_targets(self, engine, growth_request):
        from forecast_engine.data.schemas import ForecastTarget

        request = growth_request.model_copy(update={"target": ForecastTarget.BOTH})
        points = engine.forecast(request)

        assert all(p.customers > 100 for p in points)

    def test_short_history_risks(self, engine, growth_request):
        from forecast_engine.inference.risk import NO_SEASONALITY

        points = engine.forecast(growth_request)

        assert all(NO_SEASONALITY in p.risk_factors for p in points)


class TestForecastPointContents:
    """Tests for the per-point annotations."""

    def test_ranges_bracket_value(self, engine, seasonal_series):
        from forecast_engine.data.schemas import ForecastRequest

        points = engine.forecast(ForecastRequest(series=seasonal_series, horizon_months=12, seed=5))

        for p in points:
            assert p.revenue_range.pessimistic <= p.revenue <= p.revenue_range.optimistic
            assert p.customer_range.pessimistic <= p.customers <= p.customer_range.optimistic
            assert p.revenue_range.pessimistic >= 0

    def test_scenarios_ordered(self, engine, growth_request):
        from forecast_engine.data.schemas import ForecastTarget

        request = growth_request.model_copy(update={"target": ForecastTarget.BOTH})

        for p in engine.forecast(request):
            assert p.scenarios.pessimistic.revenue <= p.scenarios.realistic.revenue <= p.scenarios.optimistic.revenue
            assert p.scenarios.realistic.revenue == pytest.approx(p.revenue, abs=1)

    def test_scenarios_can_be_disabled(self, engine, growth_request):
        request = growth_request.model_copy(update={"include_scenarios": False})

        assert all(p.scenarios is None for p in engine.forecast(request))

    def test_external_factors_impact(self, engine, growth_request):
        from forecast_engine.data.schemas import ExternalFactors
        from forecast_engine.inference.risk import HIGH_COMPETITION

        factors = ExternalFactors(market_growth=0.15, economic_index=0.9, competitive_pressure=0.8)
        points = engine.forecast(growth_request.model_copy(update={"external_factors": factors}))

        assert points[0].external_factors_impact.market_growth == pytest.approx(15.0)
        assert HIGH_COMPETITION in points[0].risk_factors

    def test_impact_omitted_when_disabled(self, engine, growth_request):
        from forecast_engine.data.schemas import ExternalFactors

        request = growth_request.model_copy(update={
            "external_factors": ExternalFactors(market_growth=0.15),
            "include_external_factors": False,
        })

        assert all(p.external_factors_impact is None for p in engine.forecast(request))

    def test_cash_flow_attached(self, engine, growth_request, cash_inputs):
        points = engine.forecast(growth_request.model_copy(update={"cash_flow_inputs": cash_inputs}))

        for p in points:
            assert p.cash_flow is not None
            assert p.cash_flow.burn_rate == pytest.approx(50000 - p.revenue * 0.7, abs=1)
            assert len(p.cash_flow.cash_flow_projection) == 12

    def test_method_label(self, engine, growth_request):
        points = engine.forecast(growth_request)

        assert points[0].method.startswith("Ensemble (")

    def test_outdated_data_risk(self, engine, growth_request, growth_series):
        from forecast_engine.data.schemas import add_months
        from forecast_engine.inference.risk import OUTDATED_DATA

        request = growth_request.model_copy(update={"as_of": add_months(growth_series[-1].date, 6)})

        assert OUTDATED_DATA in engine.forecast(request)[0].risk_factors


class TestDeterminism:
    """Seeded forecasts are reproducible."""

    def test_same_seed_same_forecast(self, engine, growth_request):
        assert engine.forecast(growth_request) == engine.forecast(growth_request)

    def test_weights_override(self, growth_request):
        from forecast_engine.inference.predictor import ForecastEngine
        from forecast_engine.models.ensemble import EnsembleWeights, WeightStore

        store = WeightStore(EnsembleWeights())
        engine = ForecastEngine(weight_store=store)
        linear_only = EnsembleWeights(
            linear=1, exponential=0, moving_average=0,
            second_difference=0, nonlinear_blend=0, decayed_memory=0,
        )

        points = engine.forecast(growth_request, weights=linear_only)

        assert points[0].method == "Ensemble (Linear)"
        assert points[0].revenue == points[0].components["linear"].revenue

    def test_reads_store_snapshot(self, growth_request):
        from forecast_engine.inference.predictor import ForecastEngine
        from forecast_engine.models.ensemble import EnsembleWeights, WeightStore

        store = WeightStore(EnsembleWeights())
        engine = ForecastEngine(weight_store=store)
        store.update(lambda w: w.next_version(
            linear=0, exponential=1, moving_average=0,
            second_difference=0, nonlinear_blend=0, decayed_memory=0,
        ))

        assert engine.forecast(growth_request)[0].method == "Ensemble (Exponential)"


class TestValidation:
    """Invalid inputs are rejected."""

    def test_insufficient_data(self, engine, growth_series):
        from forecast_engine.data.schemas import ForecastRequest
        from forecast_engine.exceptions import InsufficientDataError

        with pytest.raises(InsufficientDataError, match="Need at least 3 data points for forecast, got 2"):
            engine.forecast(ForecastRequest(series=growth_series[:2], horizon_months=3))

    @pytest.mark.parametrize("horizon", [0, 25])
    def test_horizon_bounds(self, growth_series, horizon):
        from pydantic import ValidationError
        from forecast_engine.data.schemas import ForecastRequest

        with pytest.raises(ValidationError):
            ForecastRequest(series=growth_series, horizon_months=horizon)

    def test_negative_revenue_rejected(self):
        from pydantic import ValidationError
        from forecast_engine.data.schemas import HistoricalPoint

        with pytest.raises(ValidationError):
            HistoricalPoint(date=date(2024, 1, 1), revenue=-1, customers=10)

    def test_module_level_forecast(self, growth_request):
        from forecast_engine import forecast

        assert len(forecast(growth_request)) == 3
