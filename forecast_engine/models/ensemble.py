"""
Ensemble Combiner for SaaS Metric Forecasting

Blends the six sub-forecasters with a weighted average. Weights are an
immutable, versioned value: readers take a snapshot from a WeightStore,
writers build a new version that is swapped in atomically. The store can
be persisted to a YAML file with a `weights:` mapping and a `version`.
"""

import os
import threading
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence

import numpy as np
import structlog
import yaml
from pydantic import BaseModel, ConfigDict, Field

from forecast_engine.config import get_settings
from forecast_engine.models import sub_forecasters
from forecast_engine.models.statistics import SeriesStatistics

logger = structlog.get_logger(__name__)


COMPONENT_LABELS: Dict[str, str] = {
    "linear": "Linear",
    "exponential": "Exponential",
    "moving_average": "MovingAverage",
    "second_difference": "SecondDifference",
    "nonlinear_blend": "NonlinearBlend",
    "decayed_memory": "DecayedMemory",
}

COMPONENTS: List[str] = list(COMPONENT_LABELS)


class EnsembleWeights(BaseModel):
    """Named non-negative weight per sub-forecaster, plus a version counter."""

    model_config = ConfigDict(frozen=True)

    linear: float = Field(default=0.2, ge=0)
    exponential: float = Field(default=0.2, ge=0)
    moving_average: float = Field(default=0.15, ge=0)
    second_difference: float = Field(default=0.15, ge=0)
    nonlinear_blend: float = Field(default=0.2, ge=0)
    decayed_memory: float = Field(default=0.1, ge=0)
    version: int = Field(default=1, ge=1)

    def as_dict(self) -> Dict[str, float]:
        return {name: getattr(self, name) for name in COMPONENTS}

    def normalized(self) -> Dict[str, float]:
        """Weights rescaled to sum to 1; equal weights when all are zero."""
        raw = self.as_dict()
        total = sum(raw.values())
        if total <= 0:
            return {name: 1.0 / len(raw) for name in raw}
        return {name: w / total for name, w in raw.items()}

    def next_version(self, **weights: float) -> "EnsembleWeights":
        """Return a copy with updated weights and the version bumped."""
        return self.model_copy(update={**weights, "version": self.version + 1})


class WeightStore:
    """
    Holds the current EnsembleWeights.

    Forecasts read a snapshot once per call; updates are applied under a
    lock and replace the stored value with a new version.
    """

    def __init__(
        self,
        weights: Optional[EnsembleWeights] = None,
        path: Optional[str] = None,
    ):
        self._lock = threading.Lock()
        self.path = path
        self._weights = weights or self._load_weights()

    def _load_weights(self) -> EnsembleWeights:
        """Load weights from the YAML file or use defaults."""
        if self.path and os.path.exists(self.path):
            try:
                with open(self.path) as f:
                    data = yaml.safe_load(f) or {}
                weights = EnsembleWeights(
                    **data.get("weights", {}),
                    version=data.get("version", 1),
                )
                logger.info("ensemble_weights_loaded", path=self.path, version=weights.version)
                return weights
            except (OSError, yaml.YAMLError, ValueError) as e:
                logger.warning("ensemble_weights_load_failed", path=self.path, error=str(e))
        return EnsembleWeights()

    def snapshot(self) -> EnsembleWeights:
        with self._lock:
            return self._weights

    def update(self, fn: Callable[[EnsembleWeights], EnsembleWeights]) -> EnsembleWeights:
        """
        Apply `fn` to the current weights and swap in the result.

        Args:
            fn: Builds the next weights from the current ones

        Returns:
            The newly stored weights
        """
        with self._lock:
            current = self._weights
            updated = fn(current)
            if updated.version <= current.version:
                updated = updated.model_copy(update={"version": current.version + 1})
            self._weights = updated

        logger.info(
            "ensemble_weights_updated",
            from_version=current.version,
            to_version=updated.version,
        )
        return updated

    def save(self, path: Optional[str] = None) -> str:
        """Write the current weights as YAML."""
        target = path or self.path
        if not target:
            raise ValueError("No path configured for ensemble weights")

        weights = self.snapshot()
        directory = os.path.dirname(target)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(target, "w") as f:
            yaml.safe_dump(
                {"version": weights.version, "weights": weights.as_dict()},
                f,
                default_flow_style=False,
            )

        logger.info("ensemble_weights_saved", path=target, version=weights.version)
        return target


@dataclass
class CombinedForecast:
    """Ensemble value for one metric and horizon, with its components."""

    value: float
    components: Dict[str, float] = field(default_factory=dict)
    method: str = ""


class EnsembleCombiner:
    """
    Evaluates the sub-forecasters for one metric and blends them.

    Args:
        weights: Weight snapshot used for every combination
        hidden_layers: Layer widths of the nonlinear blend
        activation: Activation of the nonlinear blend output
    """

    def __init__(
        self,
        weights: Optional[EnsembleWeights] = None,
        hidden_layers: Sequence[int] = (64, 32),
        activation: str = "relu",
    ):
        self.weights = weights or EnsembleWeights()
        self.hidden_layers = tuple(hidden_layers)
        self.activation = activation

    @property
    def method_label(self) -> str:
        contributing = [
            COMPONENT_LABELS[name]
            for name, weight in self.weights.as_dict().items()
            if weight > 0
        ]
        return f"Ensemble ({'+'.join(contributing)})"

    def components(
        self,
        values: Sequence[float],
        horizon: int,
        statistics: SeriesStatistics,
        target_month: int,
        momentum_weight: float = sub_forecasters.REVENUE_MOMENTUM_WEIGHT,
        rng: Optional[np.random.Generator] = None,
    ) -> Dict[str, float]:
        """Value of each sub-forecaster for the given horizon."""
        return {
            "linear": sub_forecasters.linear_seasonal(
                values, horizon, statistics.trend, statistics.seasonal_factor(target_month)
            ),
            "exponential": sub_forecasters.exponential_momentum(
                values, horizon, statistics.growth_rate, statistics.momentum, momentum_weight
            ),
            "moving_average": sub_forecasters.moving_average_jitter(
                values, horizon, statistics.growth_rate, statistics.volatility, rng
            ),
            "second_difference": sub_forecasters.second_difference(values, horizon),
            "nonlinear_blend": sub_forecasters.nonlinear_blend(
                values, horizon, self.hidden_layers, self.activation
            ),
            "decayed_memory": sub_forecasters.decayed_memory(values, horizon),
        }

    def combine(
        self,
        values: Sequence[float],
        horizon: int,
        statistics: SeriesStatistics,
        target_month: int,
        momentum_weight: float = sub_forecasters.REVENUE_MOMENTUM_WEIGHT,
        rng: Optional[np.random.Generator] = None,
    ) -> CombinedForecast:
        """
        Weighted average of the sub-forecasters, floored at 0.

        Args:
            values: Preprocessed series for one metric
            horizon: Months past the last observation
            statistics: Estimates for the same series
            target_month: Calendar month (1-12) of the forecast date
            momentum_weight: 0.5 for revenue, 0.3 for customers
            rng: Generator for the moving-average jitter

        Returns:
            CombinedForecast with value, components and method label
        """
        components = self.components(
            values, horizon, statistics, target_month, momentum_weight, rng
        )
        normalized = self.weights.normalized()
        value = sum(components[name] * normalized[name] for name in COMPONENTS)

        return CombinedForecast(
            value=max(0.0, float(value)),
            components=components,
            method=self.method_label,
        )


# Process-wide store used by the module-level forecast helpers
_default_store: Optional[WeightStore] = None
_default_store_lock = threading.Lock()


def get_weight_store() -> WeightStore:
    """Return the process-wide WeightStore, creating it on first use."""
    global _default_store
    with _default_store_lock:
        if _default_store is None:
            _default_store = WeightStore(path=get_settings().weights_path)
        return _default_store
