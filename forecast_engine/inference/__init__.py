"""
Forecast Inference

This module provides:
- The forecast pipeline (ForecastEngine)
- Confidence scoring, intervals, scenarios and risk factors
- Forecast explanations and text summaries

Usage:
    from forecast_engine.inference import ForecastEngine, explain_prediction

    engine = ForecastEngine()
    points = engine.forecast(request)
    explanation = explain_prediction(request, points[0])
"""

from forecast_engine.inference.predictor import ForecastEngine, forecast
from forecast_engine.inference.explanation import (
    ModelExplanation,
    explain_prediction,
    generate_summary,
)

__all__ = [
    "ForecastEngine",
    "forecast",
    "ModelExplanation",
    "explain_prediction",
    "generate_summary",
]
