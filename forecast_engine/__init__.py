"""
SaaS Forecast Engine

Forecasts monthly SaaS revenue and customer counts from short histories:

Forecasting:
- Six heuristic sub-forecasters blended by a versioned weighted ensemble
- Confidence scoring, intervals, scenarios and risk annotations
- Cash-flow, burn rate, runway and break-even projections

Simulation:
- Seeded Monte Carlo with percentile bands and stress tests

Evaluation:
- Fixed-origin backtesting and expanding-window cross-validation
- Prediction tracking with adaptive ensemble weights

Usage:
    from forecast_engine import ForecastEngine, ForecastRequest

    engine = ForecastEngine()
    points = engine.forecast(ForecastRequest(series=history, horizon_months=6))
"""

__version__ = "0.1.0"

from forecast_engine.data.schemas import (
    CashFlowInputs,
    ExternalFactors,
    ForecastPoint,
    ForecastRequest,
    ForecastTarget,
    HistoricalPoint,
)
from forecast_engine.exceptions import (
    ForecastEngineError,
    InsufficientDataError,
    SimulationCancelledError,
)
from forecast_engine.inference.predictor import ForecastEngine, forecast
from forecast_engine.simulation.monte_carlo import MonteCarloConfig, run_monte_carlo

__all__ = [
    "CashFlowInputs",
    "ExternalFactors",
    "ForecastPoint",
    "ForecastRequest",
    "ForecastTarget",
    "HistoricalPoint",
    "ForecastEngineError",
    "InsufficientDataError",
    "SimulationCancelledError",
    "ForecastEngine",
    "forecast",
    "MonteCarloConfig",
    "run_monte_carlo",
]
