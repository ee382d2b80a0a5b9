"""
Backtesting for SaaS Metric Forecasts

Evaluates forecasting on held-out history:
- Fixed-origin backtest: project the test window from the training window
- Expanding-window cross-validation over k folds
- Text summary across validation results
"""

from dataclasses import dataclass, field
from datetime import date
from typing import List

import numpy as np
import structlog

from forecast_engine.data.schemas import ActualValue, HistoricalPoint, ValidationMetrics
from forecast_engine.evaluation.metrics import calculate_validation_metrics
from forecast_engine.exceptions import InsufficientDataError
from forecast_engine.models.statistics import coefficient_of_variation, growth_rate

logger = structlog.get_logger(__name__)

MIN_BACKTEST_POINTS = 6
MIN_CV_POINTS = 10
MIN_TRAIN_POINTS = 3
BIAS_THRESHOLD = 1000


@dataclass
class BacktestPrediction:
    """Projected value for one held-out month."""

    date: date
    revenue: float
    customers: float
    confidence: float = 75.0
    method: str = "Backtest Validation"


@dataclass
class BacktestError:
    date: date
    revenue_error: float  # Signed %
    customer_error: float  # Signed %


@dataclass
class ValidationResult:
    """Results from one backtest or cross-validation fold."""

    metrics: ValidationMetrics
    predictions: List[BacktestPrediction] = field(default_factory=list)
    actuals: List[ActualValue] = field(default_factory=list)
    errors: List[BacktestError] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)


def project_compound_growth(values: List[float], months_ahead: int) -> float:
    """Last value compounded at the series' historical growth rate."""
    if len(values) < 2:
        return 0.0
    return values[-1] * (1 + growth_rate(values)) ** months_ahead


def _signed_error(predicted: float, actual: float) -> float:
    if actual == 0:
        return 0.0
    return (predicted - actual) / actual * 100


def generate_recommendations(
    metrics: ValidationMetrics,
    series: List[HistoricalPoint],
) -> List[str]:
    recommendations = []

    if metrics.accuracy < 60:
        recommendations.append("Low prediction accuracy - consider adding more historical data")
    elif metrics.accuracy < 80:
        recommendations.append("Moderate prediction accuracy - data quality could be improved")
    else:
        recommendations.append("Good prediction accuracy - model is performing well")

    if abs(metrics.bias) > BIAS_THRESHOLD:
        if metrics.bias > 0:
            recommendations.append("Model tends to overestimate - consider more conservative assumptions")
        else:
            recommendations.append("Model tends to underestimate - consider more optimistic assumptions")

    if len(series) < 12:
        recommendations.append("Limited historical data - collect 12+ months for better accuracy")

    if coefficient_of_variation([p.revenue for p in series]) > 0.3:
        recommendations.append("High revenue volatility detected - consider external factors")

    if metrics.mape > 20:
        recommendations.append("High prediction error - review model assumptions and data quality")

    return recommendations


def backtest(
    series: List[HistoricalPoint],
    test_months: int = 3,
    train_ratio: float = 0.8,
) -> ValidationResult:
    """
    Project the first `test_months` held-out months from the training window.

    The series is split at floor(n * train_ratio). Every held-out month i
    (0-based) is projected i + 1 months ahead from the same training
    window, so no test observation leaks into a later projection.

    Raises:
        InsufficientDataError: Fewer than 6 points
    """
    if len(series) < MIN_BACKTEST_POINTS:
        raise InsufficientDataError(MIN_BACKTEST_POINTS, len(series), "backtesting")

    split = int(np.floor(len(series) * train_ratio))
    split = min(max(split, 2), len(series) - 1)
    return _evaluate_split(series, split, test_months)


def _evaluate_split(
    series: List[HistoricalPoint],
    split: int,
    test_months: int,
) -> ValidationResult:
    train = series[:split]
    test = series[split:]

    train_revenue = [p.revenue for p in train]
    train_customers = [p.customers for p in train]

    predictions: List[BacktestPrediction] = []
    actuals: List[ActualValue] = []
    errors: List[BacktestError] = []

    for i, point in enumerate(test[:test_months]):
        revenue = project_compound_growth(train_revenue, i + 1)
        customers = project_compound_growth(train_customers, i + 1)

        predictions.append(BacktestPrediction(date=point.date, revenue=revenue, customers=customers))
        actuals.append(ActualValue(date=point.date, revenue=point.revenue, customers=point.customers))
        errors.append(BacktestError(
            date=point.date,
            revenue_error=_signed_error(revenue, point.revenue),
            customer_error=_signed_error(customers, point.customers),
        ))

    metrics = calculate_validation_metrics(predictions, actuals)

    logger.debug(
        "backtest_completed",
        train_size=len(train),
        test_size=len(predictions),
        mape=round(metrics.mape, 2),
    )

    return ValidationResult(
        metrics=metrics,
        predictions=predictions,
        actuals=actuals,
        errors=errors,
        recommendations=generate_recommendations(metrics, series),
    )


def cross_validate(series: List[HistoricalPoint], folds: int = 5) -> List[ValidationResult]:
    """
    Expanding-window cross-validation.

    Fold k trains on the first fold_size * (k + 1) points and tests on the
    next fold_size points, where fold_size = n // (folds + 1). Folds with
    fewer than 3 training points or an empty test window are skipped.

    Raises:
        InsufficientDataError: Fewer than 10 points
    """
    if len(series) < MIN_CV_POINTS:
        raise InsufficientDataError(MIN_CV_POINTS, len(series), "cross-validation")

    n = len(series)
    fold_size = max(1, n // (folds + 1))
    results: List[ValidationResult] = []

    for k in range(folds):
        train_end = fold_size * (k + 1)
        test_end = min(train_end + fold_size, n)
        if train_end < MIN_TRAIN_POINTS or test_end <= train_end:
            continue

        results.append(_evaluate_split(series[:test_end], train_end, test_end - train_end))

    logger.info("cross_validation_completed", folds=len(results), points=n)
    return results


def validation_summary(results: List[ValidationResult]) -> str:
    if not results:
        return "No validation results available"

    avg_accuracy = float(np.mean([r.metrics.accuracy for r in results]))
    avg_mape = float(np.mean([r.metrics.mape for r in results]))
    avg_bias = float(np.mean([r.metrics.bias for r in results]))

    if avg_accuracy >= 80:
        performance = "Excellent"
    elif avg_accuracy >= 60:
        performance = "Good"
    else:
        performance = "Needs Improvement"

    return "\n".join([
        "Validation Summary:",
        f"    • Average Accuracy: {avg_accuracy:.1f}%",
        f"    • Average MAPE: {avg_mape:.1f}%",
        f"    • Average Bias: {avg_bias:.0f}",
        f"    • Validation Folds: {len(results)}",
        f"    • Model Performance: {performance}",
    ])
