"""
Prediction Tracking and Adaptive Weights

Tracks stored forecasts against the actuals that arrive later, reports
accuracy trends, and nudges the ensemble weights toward the components
that have been most accurate.

Weight updates use an exponential moving average with a small learning
rate, so weights drift rather than jump. Each update yields a new
EnsembleWeights version; nothing is mutated in place.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence
from uuid import uuid4

import numpy as np
import pandas as pd
import structlog

from forecast_engine.config import get_settings
from forecast_engine.data.schemas import (
    ActualValue,
    ForecastPoint,
    PredictionFeedback,
    PredictionRecord,
)
from forecast_engine.evaluation.metrics import calculate_validation_metrics, validate_prediction
from forecast_engine.models.ensemble import COMPONENTS, EnsembleWeights, WeightStore
from forecast_engine.repositories.base import BasePredictionRepository

logger = structlog.get_logger(__name__)

BIAS_THRESHOLD = 1000


@dataclass
class ModelPerformance:
    """Accuracy of past forecasts, overall and per method."""

    overall_accuracy: float
    method_accuracy: Dict[str, float] = field(default_factory=dict)
    component_accuracy: Dict[str, float] = field(default_factory=dict)
    recommendations: List[str] = field(default_factory=list)


@dataclass
class AccuracyTrend:
    period: str  # YYYY-MM
    accuracy: float
    mape: float
    bias: float
    prediction_count: int


@dataclass
class TrackerStats:
    total_predictions: int
    average_accuracy: float
    average_mape: float
    average_bias: float
    feedback_count: int
    average_user_rating: float


def _mean(values: Sequence[float]) -> float:
    return float(np.mean(values)) if len(values) else 0.0


def track_model_performance(
    predictions: Sequence[ForecastPoint],
    actuals: Sequence[ActualValue],
) -> ModelPerformance:
    """
    Aggregate accuracy per method label and per ensemble component.

    Predictions and actuals are paired by position; unpaired predictions
    are ignored.
    """
    by_method: Dict[str, List[float]] = {}
    by_component: Dict[str, List[float]] = {}

    for prediction, actual in zip(predictions, actuals):
        by_method.setdefault(prediction.method, []).append(
            validate_prediction(prediction, actual).accuracy
        )
        for name, component in prediction.components.items():
            by_component.setdefault(name, []).append(
                validate_prediction(component, actual).accuracy
            )

    method_accuracy = {method: _mean(acc) for method, acc in by_method.items()}
    component_accuracy = {name: _mean(acc) for name, acc in by_component.items()}
    overall = _mean([a for acc in by_method.values() for a in acc])

    recommendations = []
    if overall < 70:
        recommendations.append("Consider increasing training data or adjusting model parameters")
    if overall < 80:
        recommendations.append("Review external factors and seasonality adjustments")
    if len(method_accuracy) > 1:
        best, best_accuracy = max(method_accuracy.items(), key=lambda item: item[1])
        recommendations.append(f"Best performing method: {best} ({best_accuracy:.1f}% accuracy)")
    if component_accuracy:
        best, best_accuracy = max(component_accuracy.items(), key=lambda item: item[1])
        recommendations.append(f"Most accurate component: {best} ({best_accuracy:.1f}% accuracy)")

    return ModelPerformance(
        overall_accuracy=overall,
        method_accuracy=method_accuracy,
        component_accuracy=component_accuracy,
        recommendations=recommendations,
    )


def update_model_weights(
    weights: EnsembleWeights,
    performance: ModelPerformance,
    learning_rate: float = 0.1,
) -> EnsembleWeights:
    """
    Move each component weight toward its share of total accuracy.

    new = current + learning_rate * (accuracy / total_accuracy - current)

    Components without recorded accuracy keep their weight. Returns the
    input unchanged when there is nothing to learn from.
    """
    accuracy = {
        name: acc for name, acc in performance.component_accuracy.items()
        if name in COMPONENTS and acc > 0
    }
    total = sum(accuracy.values())
    if total <= 0:
        return weights

    current = weights.as_dict()
    updated = {
        name: current[name] + learning_rate * (acc / total - current[name])
        for name, acc in accuracy.items()
    }
    return weights.next_version(**updated)


class PredictionTracker:
    """
    Stores forecasts and scores them once actuals arrive.

    Args:
        repository: Storage for prediction records
    """

    def __init__(self, repository: BasePredictionRepository):
        self.repository = repository

    @staticmethod
    def generate_id() -> str:
        return f"pred_{uuid4().hex[:16]}"

    async def store_prediction(self, predictions: List[ForecastPoint]) -> str:
        record = PredictionRecord(id=self.generate_id(), predictions=list(predictions))
        await self.repository.put(record)
        logger.info("prediction_stored", record_id=record.id, points=len(predictions))
        return record.id

    async def update_with_actuals(self, record_id: str, actuals: List[ActualValue]) -> bool:
        """
        Attach actuals to a record and compute its accuracy.

        Returns:
            False if the record does not exist
        """
        record = await self.repository.get_by_id(record_id)
        if record is None:
            return False

        n = min(len(record.predictions), len(actuals))
        accuracy = calculate_validation_metrics(record.predictions[:n], actuals[:n])

        await self.repository.put(record.model_copy(update={"actuals": actuals, "accuracy": accuracy}))
        logger.info("prediction_actuals_recorded", record_id=record_id, accuracy=round(accuracy.accuracy, 1))
        return True

    async def add_feedback(self, record_id: str, feedback: PredictionFeedback) -> bool:
        record = await self.repository.get_by_id(record_id)
        if record is None:
            return False

        await self.repository.put(record.model_copy(update={"feedback": feedback}))
        return True

    async def accuracy_trends(
        self,
        months: int = 6,
        now: Optional[datetime] = None,
    ) -> List[AccuracyTrend]:
        """Average accuracy of scored records per calendar month, oldest first."""
        records = [r for r in await self.repository.list_recent() if r.accuracy is not None]
        if not records:
            return []

        df = pd.DataFrame([
            {
                "timestamp": r.timestamp,
                "accuracy": r.accuracy.accuracy,
                "mape": r.accuracy.mape,
                "bias": r.accuracy.bias,
            }
            for r in records
        ])
        df["timestamp"] = pd.to_datetime(df["timestamp"], utc=True)

        now = now or datetime.now(timezone.utc)
        cutoff = pd.Timestamp(now) - pd.DateOffset(months=months)
        if cutoff.tzinfo is None:
            cutoff = cutoff.tz_localize("UTC")
        df = df[df["timestamp"] >= cutoff]
        if df.empty:
            return []

        df["period"] = df["timestamp"].dt.strftime("%Y-%m")
        grouped = df.groupby("period").agg(
            accuracy=("accuracy", "mean"),
            mape=("mape", "mean"),
            bias=("bias", "mean"),
            prediction_count=("accuracy", "size"),
        ).sort_index()

        return [
            AccuracyTrend(
                period=str(period),
                accuracy=float(row.accuracy),
                mape=float(row.mape),
                bias=float(row.bias),
                prediction_count=int(row.prediction_count),
            )
            for period, row in grouped.iterrows()
        ]

    async def overall_stats(self) -> TrackerStats:
        records = await self.repository.list_recent()
        scored = [r.accuracy for r in records if r.accuracy is not None]
        ratings = [r.feedback.user_rating for r in records if r.feedback is not None]

        return TrackerStats(
            total_predictions=len(records),
            average_accuracy=_mean([m.accuracy for m in scored]),
            average_mape=_mean([m.mape for m in scored]),
            average_bias=_mean([m.bias for m in scored]),
            feedback_count=len(ratings),
            average_user_rating=_mean(ratings),
        )

    async def improvement_recommendations(self) -> List[str]:
        stats = await self.overall_stats()
        trends = await self.accuracy_trends(months=3)
        recommendations = []

        if stats.average_accuracy < 60:
            recommendations.append("Low overall accuracy - consider adding more historical data")
        elif stats.average_accuracy < 80:
            recommendations.append("Moderate accuracy - review prediction models and data quality")

        if abs(stats.average_bias) > BIAS_THRESHOLD:
            if stats.average_bias > 0:
                recommendations.append("Model consistently overestimates - adjust growth assumptions")
            else:
                recommendations.append("Model consistently underestimates - review conservative assumptions")

        if len(trends) >= 2 and trends[-1].accuracy < trends[-2].accuracy:
            recommendations.append("Accuracy declining - review recent changes and data quality")

        if stats.feedback_count > 0 and stats.average_user_rating < 3:
            recommendations.append("Low user satisfaction - review prediction methodology")

        if stats.total_predictions < 10:
            recommendations.append("Limited prediction history - more data needed for reliable accuracy metrics")

        return recommendations

    async def refresh_weights(
        self,
        weight_store: WeightStore,
        learning_rate: Optional[float] = None,
    ) -> Optional[EnsembleWeights]:
        """
        Feed every record with actuals into a weight update.

        Returns:
            The new weights, or None when no record has actuals
        """
        predictions: List[ForecastPoint] = []
        actuals: List[ActualValue] = []
        for record in await self.repository.list_recent():
            if not record.actuals:
                continue
            n = min(len(record.predictions), len(record.actuals))
            predictions.extend(record.predictions[:n])
            actuals.extend(record.actuals[:n])

        if not predictions:
            logger.info("weight_refresh_skipped", reason="no_actuals")
            return None

        rate = learning_rate if learning_rate is not None else get_settings().weight_learning_rate
        performance = track_model_performance(predictions, actuals)
        return weight_store.update(lambda w: update_model_weights(w, performance, rate))
