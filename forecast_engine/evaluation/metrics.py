"""
Forecast Error Metrics

Error metrics for revenue and customer forecasts:
- MAPE, RMSE, MAE and bias, averaged over revenue and customers
- Accuracy as max(0, 100 - MAPE)
- Single-point validation with human-readable feedback
"""

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional, Protocol, Sequence

import numpy as np

from forecast_engine.data.schemas import ValidationMetrics

ACCURATE_THRESHOLD = 80.0


class HasMetrics(Protocol):
    revenue: float
    customers: float


@dataclass
class PredictionValidation:
    """Outcome of scoring one forecast point against its actual value"""

    accuracy: float  # 0-100
    error: float  # Average relative error (%)
    is_accurate: bool
    feedback: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def percentage_errors(predicted: np.ndarray, actual: np.ndarray) -> np.ndarray:
    """
    Absolute percentage errors, 0 where the actual value is 0.

    |actual - predicted| / actual * 100
    """
    errors = np.zeros_like(actual, dtype=float)
    mask = actual != 0
    errors[mask] = np.abs(predicted[mask] - actual[mask]) / np.abs(actual[mask]) * 100
    return errors


def calculate_validation_metrics(
    predicted: Sequence[HasMetrics],
    actual: Sequence[HasMetrics],
) -> ValidationMetrics:
    """
    Metrics averaged over revenue and customers, then over points.

    Args:
        predicted: Forecast points (anything with revenue and customers)
        actual: Observed values, aligned with `predicted`

    Returns:
        ValidationMetrics; all zeros for empty input

    Raises:
        ValueError: If the sequences differ in length
    """
    if len(predicted) != len(actual):
        raise ValueError("Predictions and actuals must have the same length")
    if len(predicted) == 0:
        return ValidationMetrics(mape=0, rmse=0, mae=0, bias=0, accuracy=0)

    pred_rev = np.array([p.revenue for p in predicted], dtype=float)
    pred_cust = np.array([p.customers for p in predicted], dtype=float)
    act_rev = np.array([a.revenue for a in actual], dtype=float)
    act_cust = np.array([a.customers for a in actual], dtype=float)

    mape = np.mean((percentage_errors(pred_rev, act_rev) + percentage_errors(pred_cust, act_cust)) / 2)
    mse = np.mean(((pred_rev - act_rev) ** 2 + (pred_cust - act_cust) ** 2) / 2)
    mae = np.mean((np.abs(pred_rev - act_rev) + np.abs(pred_cust - act_cust)) / 2)
    bias = np.mean(((pred_rev - act_rev) + (pred_cust - act_cust)) / 2)

    return ValidationMetrics(
        mape=float(mape),
        rmse=float(np.sqrt(mse)),
        mae=float(mae),
        bias=float(bias),
        accuracy=float(max(0.0, 100 - mape)),
    )


def _relative_error(predicted: float, actual: float) -> float:
    if actual == 0:
        return 0.0
    return abs(predicted - actual) / abs(actual)


def accuracy_feedback(accuracy: float) -> str:
    if accuracy >= 90:
        return "Excellent prediction accuracy"
    if accuracy >= 80:
        return "Good prediction accuracy"
    if accuracy >= 70:
        return "Moderate prediction accuracy"
    return "Low prediction accuracy - consider model retraining"


def validate_prediction(
    prediction: HasMetrics,
    actual: Optional[HasMetrics] = None,
) -> PredictionValidation:
    """
    Score a single forecast point.

    Accuracy is (1 - mean relative error of revenue and customers) * 100,
    floored at 0. Points at or above 80% count as accurate.
    """
    if actual is None:
        return PredictionValidation(
            accuracy=0.0,
            error=0.0,
            is_accurate=False,
            feedback="No actual data available for validation",
        )

    avg_error = (
        _relative_error(prediction.revenue, actual.revenue)
        + _relative_error(prediction.customers, actual.customers)
    ) / 2
    accuracy = max(0.0, (1 - avg_error) * 100)

    return PredictionValidation(
        accuracy=accuracy,
        error=avg_error * 100,
        is_accurate=accuracy >= ACCURATE_THRESHOLD,
        feedback=accuracy_feedback(accuracy),
    )
