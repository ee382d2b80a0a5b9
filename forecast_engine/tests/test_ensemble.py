"""
Tests for the Ensemble Combiner and Weight Store

Test Coverage:
- Default and normalized weights
- Immutable versioned updates
- YAML persistence
- Weighted combination and method labels
"""

import numpy as np
import pytest


class TestEnsembleWeights:
    """Tests for the weight value object."""

    def test_defaults_sum_to_one(self):
        from forecast_engine.models.ensemble import EnsembleWeights

        weights = EnsembleWeights()

        assert sum(weights.as_dict().values()) == pytest.approx(1.0)
        assert weights.linear == 0.2
        assert weights.decayed_memory == 0.1
        assert weights.version == 1

    def test_frozen(self):
        from pydantic import ValidationError
        from forecast_engine.models.ensemble import EnsembleWeights

        weights = EnsembleWeights()
        with pytest.raises(ValidationError):
            weights.linear = 0.5

    def test_negative_weight_rejected(self):
        from pydantic import ValidationError
        from forecast_engine.models.ensemble import EnsembleWeights

        with pytest.raises(ValidationError):
            EnsembleWeights(linear=-0.1)

    def test_normalized(self):
        from forecast_engine.models.ensemble import EnsembleWeights

        normalized = EnsembleWeights(
            linear=2, exponential=2, moving_average=0,
            second_difference=0, nonlinear_blend=0, decayed_memory=0,
        ).normalized()

        assert normalized["linear"] == pytest.approx(0.5)
        assert normalized["moving_average"] == 0.0

    def test_all_zero_falls_back_to_equal(self):
        from forecast_engine.models.ensemble import COMPONENTS, EnsembleWeights

        zero = EnsembleWeights(**{name: 0 for name in COMPONENTS})

        assert all(w == pytest.approx(1 / 6) for w in zero.normalized().values())

    def test_next_version_is_a_new_value(self):
        from forecast_engine.models.ensemble import EnsembleWeights

        original = EnsembleWeights()
        updated = original.next_version(linear=0.3)

        assert updated.version == 2
        assert updated.linear == 0.3
        assert original.linear == 0.2
        assert original.version == 1


class TestWeightStore:
    """Tests for snapshot/update and persistence."""

    def test_update_swaps_in_new_version(self):
        from forecast_engine.models.ensemble import EnsembleWeights, WeightStore

        store = WeightStore(EnsembleWeights())
        before = store.snapshot()

        after = store.update(lambda w: w.next_version(exponential=0.4))

        assert after.version == 2
        assert store.snapshot() is after
        assert before.exponential == 0.2

    def test_update_forces_version_bump(self):
        from forecast_engine.models.ensemble import EnsembleWeights, WeightStore

        store = WeightStore(EnsembleWeights(version=3))
        updated = store.update(lambda w: w.model_copy(update={"linear": 0.1}))

        assert updated.version == 4

    def test_yaml_round_trip(self, tmp_path):
        from forecast_engine.models.ensemble import EnsembleWeights, WeightStore

        path = str(tmp_path / "weights" / "ensemble.yaml")
        store = WeightStore(EnsembleWeights(linear=0.35, version=5), path=path)
        store.save()

        reloaded = WeightStore(path=path).snapshot()

        assert reloaded.linear == pytest.approx(0.35)
        assert reloaded.version == 5

    def test_missing_file_uses_defaults(self, tmp_path):
        from forecast_engine.models.ensemble import EnsembleWeights, WeightStore

        store = WeightStore(path=str(tmp_path / "absent.yaml"))

        assert store.snapshot() == EnsembleWeights()

    def test_invalid_file_uses_defaults(self, tmp_path):
        from forecast_engine.models.ensemble import EnsembleWeights, WeightStore

        path = tmp_path / "bad.yaml"
        path.write_text("weights:\n  linear: -1\n")

        assert WeightStore(path=str(path)).snapshot() == EnsembleWeights()

    def test_save_without_path_raises(self):
        from forecast_engine.models.ensemble import WeightStore

        with pytest.raises(ValueError):
            WeightStore().save()


class TestEnsembleCombiner:
    """Tests for the weighted combination."""

    def _stats(self, values):
        from forecast_engine.models.statistics import SeriesStatistics

        return SeriesStatistics.from_values(values)

    def test_value_is_weighted_sum_of_components(self):
        from forecast_engine.models.ensemble import COMPONENTS, EnsembleCombiner, EnsembleWeights

        values = np.array([100, 110, 118, 130, 142, 150, 163], dtype=float)
        weights = EnsembleWeights()
        combined = EnsembleCombiner(weights).combine(values, 2, self._stats(values), target_month=3)

        expected = sum(combined.components[name] * weights.normalized()[name] for name in COMPONENTS)
        assert combined.value == pytest.approx(expected)
        assert set(combined.components) == set(COMPONENTS)

    def test_single_component_weight(self):
        from forecast_engine.models.ensemble import EnsembleCombiner, EnsembleWeights
        from forecast_engine.models.sub_forecasters import second_difference

        values = np.array([1, 4, 9, 16], dtype=float)
        weights = EnsembleWeights(
            linear=0, exponential=0, moving_average=0,
            second_difference=1, nonlinear_blend=0, decayed_memory=0,
        )
        combined = EnsembleCombiner(weights).combine(values, 1, self._stats(values), target_month=5)

        assert combined.value == pytest.approx(second_difference(values, 1))
        assert combined.method == "Ensemble (SecondDifference)"

    def test_default_label_lists_all_components(self):
        from forecast_engine.models.ensemble import EnsembleCombiner

        assert EnsembleCombiner().method_label == (
            "Ensemble (Linear+Exponential+MovingAverage+SecondDifference+NonlinearBlend+DecayedMemory)"
        )

    def test_never_negative(self):
        from forecast_engine.models.ensemble import EnsembleCombiner

        values = np.array([1000, 600, 300, 100, 20], dtype=float)
        combined = EnsembleCombiner().combine(values, 12, self._stats(values), target_month=1)

        assert combined.value >= 0
