"""
Evaluation, backtesting and prediction tracking for SaaS forecasts.
"""

from .backtesting import (
    ValidationResult,
    backtest,
    cross_validate,
    validation_summary,
)

from .metrics import (
    calculate_validation_metrics,
    validate_prediction,
)

from .tracking import (
    ModelPerformance,
    PredictionTracker,
    track_model_performance,
    update_model_weights,
)

__all__ = [
    'ValidationResult',
    'backtest',
    'cross_validate',
    'validation_summary',
    'calculate_validation_metrics',
    'validate_prediction',
    'ModelPerformance',
    'PredictionTracker',
    'track_model_performance',
    'update_model_weights',
]
