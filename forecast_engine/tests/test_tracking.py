"""
Tests for Prediction Tracking and Adaptive Weights

Test Coverage:
- Per-method and per-component accuracy
- Exponential-moving-average weight updates
- Storing records, attaching actuals and feedback
- Monthly accuracy trends, overall statistics and recommendations
"""

from datetime import date, datetime, timezone

import pytest


def _point(revenue=1000.0, customers=100.0, method="Ensemble (Linear)", components=None):
    from forecast_engine.data.schemas import ComponentForecast, ForecastPoint, Range

    return ForecastPoint(
        date=date(2025, 1, 1),
        revenue=revenue,
        customers=customers,
        confidence=80,
        method=method,
        revenue_range=Range(optimistic=revenue * 1.1, pessimistic=revenue * 0.9),
        customer_range=Range(optimistic=customers * 1.1, pessimistic=customers * 0.9),
        components={
            name: ComponentForecast(revenue=r, customers=c)
            for name, (r, c) in (components or {}).items()
        },
    )


def _actual(revenue=1000.0, customers=100.0):
    from forecast_engine.data.schemas import ActualValue

    return ActualValue(date=date(2025, 1, 1), revenue=revenue, customers=customers)


def _record(record_id, timestamp, accuracy=90.0, bias=0.0):
    from forecast_engine.data.schemas import PredictionRecord, ValidationMetrics

    return PredictionRecord(
        id=record_id,
        timestamp=timestamp,
        predictions=[_point()],
        accuracy=ValidationMetrics(mape=100 - accuracy, rmse=0, mae=0, bias=bias, accuracy=accuracy),
    )


@pytest.fixture
def repository():
    from forecast_engine.repositories.prediction_repository import InMemoryPredictionRepository

    return InMemoryPredictionRepository()


@pytest.fixture
def tracker(repository):
    from forecast_engine.evaluation.tracking import PredictionTracker

    return PredictionTracker(repository)


COMPONENTS = {"linear": (1000.0, 100.0), "exponential": (1500.0, 100.0)}


class TestTrackModelPerformance:
    def test_component_accuracy(self):
        from forecast_engine.evaluation.tracking import track_model_performance

        performance = track_model_performance([_point(components=COMPONENTS)], [_actual()])

        assert performance.overall_accuracy == pytest.approx(100.0)
        assert performance.method_accuracy == {"Ensemble (Linear)": pytest.approx(100.0)}
        assert performance.component_accuracy["linear"] == pytest.approx(100.0)
        assert performance.component_accuracy["exponential"] == pytest.approx(75.0)
        assert "Most accurate component: linear (100.0% accuracy)" in performance.recommendations

    def test_low_accuracy_recommendations(self):
        from forecast_engine.evaluation.tracking import track_model_performance

        performance = track_model_performance([_point(revenue=1800, customers=160)], [_actual()])

        assert performance.overall_accuracy == pytest.approx(30.0)
        assert "Consider increasing training data or adjusting model parameters" in performance.recommendations
        assert "Review external factors and seasonality adjustments" in performance.recommendations

    def test_best_method_reported(self):
        from forecast_engine.evaluation.tracking import track_model_performance

        predictions = [_point(method="A"), _point(revenue=1200, method="B")]
        performance = track_model_performance(predictions, [_actual(), _actual()])

        assert "Best performing method: A (100.0% accuracy)" in performance.recommendations

    def test_unpaired_predictions_ignored(self):
        from forecast_engine.evaluation.tracking import track_model_performance

        performance = track_model_performance([_point(), _point(revenue=0)], [_actual()])

        assert performance.overall_accuracy == pytest.approx(100.0)


class TestUpdateModelWeights:
    """Weights move a learning-rate step toward each component's accuracy share."""

    def test_moving_average_step(self, default_weights):
        from forecast_engine.evaluation.tracking import track_model_performance, update_model_weights

        performance = track_model_performance([_point(components=COMPONENTS)], [_actual()])
        updated = update_model_weights(default_weights, performance, learning_rate=0.1)

        # Shares are 100/175 and 75/175
        assert updated.linear == pytest.approx(0.2 + 0.1 * (100 / 175 - 0.2))
        assert updated.exponential == pytest.approx(0.2 + 0.1 * (75 / 175 - 0.2))
        assert updated.moving_average == default_weights.moving_average
        assert updated.version == default_weights.version + 1

    def test_original_untouched(self, default_weights):
        from forecast_engine.evaluation.tracking import track_model_performance, update_model_weights

        performance = track_model_performance([_point(components=COMPONENTS)], [_actual()])
        update_model_weights(default_weights, performance)

        assert default_weights.linear == 0.2
        assert default_weights.version == 1

    def test_nothing_to_learn(self, default_weights):
        from forecast_engine.evaluation.tracking import ModelPerformance, update_model_weights

        assert update_model_weights(default_weights, ModelPerformance(overall_accuracy=0)) is default_weights


class TestPredictionTracker:
    """Tests for record lifecycle against an in-memory repository."""

    @pytest.mark.asyncio
    async def test_store_prediction(self, tracker, repository):
        record_id = await tracker.store_prediction([_point()])

        assert record_id.startswith("pred_")
        record = await repository.get_by_id(record_id)
        assert record.predictions[0].revenue == 1000
        assert record.actuals is None

    @pytest.mark.asyncio
    async def test_update_with_actuals(self, tracker, repository):
        record_id = await tracker.store_prediction([_point(revenue=1100), _point()])

        assert await tracker.update_with_actuals(record_id, [_actual()])

        record = await repository.get_by_id(record_id)
        assert record.accuracy.mape == pytest.approx(5.0)
        assert len(record.actuals) == 1

    @pytest.mark.asyncio
    async def test_unknown_record(self, tracker):
        from forecast_engine.data.schemas import PredictionFeedback

        feedback = PredictionFeedback(user_rating=4, actual_outcome="better")

        assert not await tracker.update_with_actuals("pred_missing", [_actual()])
        assert not await tracker.add_feedback("pred_missing", feedback)

    @pytest.mark.asyncio
    async def test_add_feedback(self, tracker, repository):
        from forecast_engine.data.schemas import PredictionFeedback

        record_id = await tracker.store_prediction([_point()])
        feedback = PredictionFeedback(user_rating=2, comments="too high", actual_outcome="worse")

        assert await tracker.add_feedback(record_id, feedback)
        assert (await repository.get_by_id(record_id)).feedback.user_rating == 2

    @pytest.mark.asyncio
    async def test_accuracy_trends(self, tracker, repository):
        await repository.put(_record("old", datetime(2024, 1, 5, tzinfo=timezone.utc), accuracy=10))
        await repository.put(_record("jan", datetime(2025, 1, 15, tzinfo=timezone.utc), accuracy=80))
        await repository.put(_record("feb1", datetime(2025, 2, 10, tzinfo=timezone.utc), accuracy=90))
        await repository.put(_record("feb2", datetime(2025, 2, 20, tzinfo=timezone.utc), accuracy=70))

        trends = await tracker.accuracy_trends(months=6, now=datetime(2025, 3, 1, tzinfo=timezone.utc))

        assert [t.period for t in trends] == ["2025-01", "2025-02"]
        assert trends[1].accuracy == pytest.approx(80.0)
        assert trends[1].prediction_count == 2

    @pytest.mark.asyncio
    async def test_trends_without_scored_records(self, tracker):
        await tracker.store_prediction([_point()])

        assert await tracker.accuracy_trends() == []

    @pytest.mark.asyncio
    async def test_overall_stats(self, tracker, repository):
        from forecast_engine.data.schemas import PredictionFeedback

        now = datetime.now(timezone.utc)
        await repository.put(_record("a", now, accuracy=90, bias=100))
        await repository.put(_record("b", now, accuracy=70, bias=-300))
        await tracker.store_prediction([_point()])
        await tracker.add_feedback("a", PredictionFeedback(user_rating=4, actual_outcome="as_expected"))

        stats = await tracker.overall_stats()

        assert stats.total_predictions == 3
        assert stats.average_accuracy == pytest.approx(80.0)
        assert stats.average_bias == pytest.approx(-100.0)
        assert stats.feedback_count == 1
        assert stats.average_user_rating == 4

    @pytest.mark.asyncio
    async def test_recommendations_for_empty_history(self, tracker):
        recommendations = await tracker.improvement_recommendations()

        assert "Low overall accuracy - consider adding more historical data" in recommendations
        assert "Limited prediction history - more data needed for reliable accuracy metrics" in recommendations

    @pytest.mark.asyncio
    async def test_recommendations_for_bias(self, tracker, repository):
        await repository.put(_record("a", datetime.now(timezone.utc), accuracy=95, bias=5000))

        recommendations = await tracker.improvement_recommendations()

        assert "Model consistently overestimates - adjust growth assumptions" in recommendations

    @pytest.mark.asyncio
    async def test_refresh_weights(self, tracker, default_weights):
        from forecast_engine.models.ensemble import WeightStore

        store = WeightStore(default_weights)
        record_id = await tracker.store_prediction([_point(components=COMPONENTS)])
        await tracker.update_with_actuals(record_id, [_actual()])

        updated = await tracker.refresh_weights(store, learning_rate=0.5)

        assert updated.version == 2
        assert store.snapshot() is updated
        assert updated.linear > default_weights.linear

    @pytest.mark.asyncio
    async def test_refresh_without_actuals(self, tracker, default_weights):
        from forecast_engine.models.ensemble import WeightStore

        store = WeightStore(default_weights)
        await tracker.store_prediction([_point()])

        assert await tracker.refresh_weights(store) is None
        assert store.snapshot().version == 1
