"""
Tests for Scenario, Interval and Risk Generation
"""

from datetime import date

import pytest


class TestConfidenceInterval:
    def test_symmetric_spread(self):
        from forecast_engine.inference.scenarios import confidence_interval

        interval = confidence_interval(1000, 80)

        assert interval.optimistic == 1060
        assert interval.pessimistic == 940

    def test_pessimistic_never_negative(self):
        from forecast_engine.inference.scenarios import confidence_interval

        assert confidence_interval(0, 15).pessimistic == 0

    @pytest.mark.parametrize("confidence", [15, 40, 72.5, 95])
    def test_ordering(self, confidence):
        from forecast_engine.inference.scenarios import confidence_interval

        interval = confidence_interval(12345.6, confidence)
        assert interval.pessimistic <= round(12345.6) <= interval.optimistic


class TestScenarios:
    def test_ordering_without_external_factors(self):
        from forecast_engine.inference.scenarios import generate_scenarios

        scenarios = generate_scenarios(10000, 200)

        assert scenarios.pessimistic.revenue < scenarios.realistic.revenue < scenarios.optimistic.revenue
        assert scenarios.pessimistic.customers < scenarios.realistic.customers < scenarios.optimistic.customers
        assert scenarios.optimistic.revenue == 12500
        assert scenarios.pessimistic.customers == 170

    def test_realistic_is_ensemble_value(self):
        from forecast_engine.inference.scenarios import generate_scenarios

        scenarios = generate_scenarios(10000.4, 199.6)

        assert scenarios.realistic.revenue == 10000
        assert scenarios.realistic.customers == 200

    def test_external_factors_scale_bands(self):
        from forecast_engine.data.schemas import ExternalFactors
        from forecast_engine.inference.scenarios import generate_scenarios

        factors = ExternalFactors(market_growth=0.1, economic_index=0.9, competitive_pressure=0.2)
        scenarios = generate_scenarios(10000, 100, factors)

        # 10000 * 1.25 * (1 + 0.1 * 0.5) * 0.9 * 0.8
        assert scenarios.optimistic.revenue == 9450
        assert scenarios.realistic.revenue == round(10000 * 1.02 * 0.72)

    def test_full_competition_zeroes_bands(self):
        from forecast_engine.data.schemas import ExternalFactors
        from forecast_engine.inference.scenarios import generate_scenarios

        scenarios = generate_scenarios(5000, 50, ExternalFactors(competitive_pressure=1.0))

        assert scenarios.optimistic.revenue == 0
        assert scenarios.pessimistic.customers == 0


class TestExternalFactorsImpact:
    def test_percentages(self):
        from forecast_engine.data.schemas import ExternalFactors
        from forecast_engine.inference.scenarios import external_factors_impact

        factors = ExternalFactors(
            market_growth=0.15,
            economic_index=0.8,
            competitive_pressure=0.4,
            seasonality=[0.01 * m for m in range(12)],
        )
        impact = external_factors_impact(factors, date(2025, 3, 1))

        assert impact.market_growth == pytest.approx(15.0)
        assert impact.economic_index == pytest.approx(80.0)
        assert impact.competitive_pressure == pytest.approx(40.0)
        assert impact.seasonality == pytest.approx(2.0)

    def test_short_seasonality_ignored(self):
        from forecast_engine.data.schemas import ExternalFactors
        from forecast_engine.inference.scenarios import external_factors_impact

        impact = external_factors_impact(ExternalFactors(seasonality=[0.5] * 6), date(2025, 3, 1))

        assert impact.seasonality == 0.0


class TestRiskFactors:
    def test_clean_forecast_has_no_risks(self):
        from forecast_engine.inference.risk import identify_risk_factors

        assert identify_risk_factors(24, 3, 85, 0.05, 0) == []

    def test_short_history(self):
        from forecast_engine.inference import risk

        risks = risk.identify_risk_factors(5, 1, 85, 0.05, 0)

        assert risks == [risk.LIMITED_HISTORY, risk.NO_SEASONALITY]

    def test_horizon_and_confidence(self):
        from forecast_engine.inference import risk

        risks = risk.identify_risk_factors(24, 13, 35, 0.05, 0)

        assert risk.LONG_TERM in risks
        assert risk.VERY_LONG_TERM in risks
        assert risk.LOW_CONFIDENCE in risks
        assert risk.VERY_LOW_CONFIDENCE in risks

    def test_volatility_and_age(self):
        from forecast_engine.inference import risk

        risks = risk.identify_risk_factors(24, 1, 85, 0.31, 4)

        assert risks == [risk.HIGH_VOLATILITY, risk.OUTDATED_DATA]

    def test_external_factors(self):
        from forecast_engine.data.schemas import ExternalFactors
        from forecast_engine.inference import risk

        factors = ExternalFactors(market_growth=0.02, economic_index=0.5, competitive_pressure=0.8)
        risks = risk.identify_risk_factors(24, 1, 85, 0.05, 0, factors)

        assert risks == [risk.HIGH_COMPETITION, risk.ECONOMIC_UNCERTAINTY, risk.SLOW_MARKET]

    def test_messages(self):
        from forecast_engine.inference import risk

        assert risk.LIMITED_HISTORY == "Limited historical data (< 6 months)"
        assert risk.OUTDATED_DATA == "Outdated historical data"
