"""
Sub-Forecasters

Six single-method predictors combined by the ensemble. None of them is
trained: the nonlinear blend uses fixed trigonometric weights and the
decayed-memory method is a recency-weighted average. Each returns a value
for `horizon` months past the last observation, floored at 0.
"""

from typing import Callable, Optional, Sequence

import numpy as np

from forecast_engine.models import statistics as stats

MOVING_AVERAGE_WINDOW = 6
JITTER_BASE = 0.05
DECAY_RATE = 0.2
DECAY_WINDOW = 6

REVENUE_MOMENTUM_WEIGHT = 0.5
CUSTOMER_MOMENTUM_WEIGHT = 0.3

ACTIVATIONS: dict = {
    "relu": lambda x: max(0.0, x),
    "sigmoid": lambda x: 1.0 / (1.0 + np.exp(-x)),
    "tanh": np.tanh,
}


def _last(values: np.ndarray) -> float:
    return float(values[-1]) if len(values) else 0.0


def linear_seasonal(
    values: Sequence[float],
    horizon: int,
    trend: float,
    seasonal_factor: float = 0.0,
) -> float:
    """Last value plus trend * horizon, scaled by the target month's seasonal factor."""
    y = np.asarray(values, dtype=float)
    prediction = (_last(y) + trend * horizon) * (1 + seasonal_factor)
    return max(0.0, prediction)


def exponential_momentum(
    values: Sequence[float],
    horizon: int,
    growth: float,
    momentum: float,
    momentum_weight: float = REVENUE_MOMENTUM_WEIGHT,
) -> float:
    """Compound the last value at the historical growth rate nudged by momentum."""
    y = np.asarray(values, dtype=float)
    adjusted_growth = growth + momentum * momentum_weight
    return max(0.0, _last(y) * (1 + adjusted_growth) ** horizon)


def moving_average_jitter(
    values: Sequence[float],
    horizon: int,
    growth: float,
    volatility: float,
    rng: Optional[np.random.Generator] = None,
) -> float:
    """
    Mean of the last 6 points grown at the historical rate, times a random
    jitter of +/-5% widened by volatility.

    Without a generator the jitter is 1, which keeps the method usable in
    deterministic contexts such as backtests.
    """
    y = np.asarray(values, dtype=float)
    if len(y) == 0:
        return 0.0

    moving_avg = y[-MOVING_AVERAGE_WINDOW:].mean()
    jitter = 1.0
    if rng is not None:
        jitter = 1 + rng.uniform(-JITTER_BASE, JITTER_BASE) * (1 + volatility)

    return max(0.0, moving_avg * (1 + growth) ** horizon * jitter)


def second_difference(values: Sequence[float], horizon: int) -> float:
    """
    Extrapolate the latest first difference, accelerating by the latest
    second difference on each step.
    """
    y = np.asarray(values, dtype=float)
    if len(y) < 3:
        return max(0.0, _last(y))

    first_diff = np.diff(y)
    second_diff = np.diff(first_diff)
    last_first = first_diff[-1]
    last_second = second_diff[-1]

    prediction = _last(y)
    for step in range(horizon):
        prediction += last_first + last_second * (step + 1)

    return max(0.0, prediction)


def _extract_features(y: np.ndarray) -> np.ndarray:
    recent = y[-3:]
    recent_std = recent.std()
    normalized_last = (recent[-1] - recent.mean()) / (recent_std or 1.0)
    return np.array([
        normalized_last,
        stats.weighted_trend(y),
        stats.volatility(y),
        stats.momentum(y),
    ])


def _fixed_layer(inputs: np.ndarray, output_size: int) -> np.ndarray:
    """Dense layer with weight[i, j] = sin(i*j + i) * 0.5."""
    i = np.arange(output_size)[:, None]
    j = np.arange(len(inputs))[None, :]
    weights = np.sin(i * j + i) * 0.5
    return weights @ inputs


def nonlinear_blend(
    values: Sequence[float],
    horizon: int,
    hidden_layers: Sequence[int] = (64, 32),
    activation: str = "relu",
) -> float:
    """
    Pass four features through fixed dense layers and scale the last value
    by the activated output.

    Falls back to the last value below 5 points.
    """
    y = np.asarray(values, dtype=float)
    if len(y) < 5:
        return max(0.0, _last(y))

    signal = _extract_features(y)
    for width in hidden_layers:
        signal = _fixed_layer(signal, width)
    output = _fixed_layer(signal, 1)[0]

    activate: Callable[[float], float] = ACTIVATIONS.get(activation, ACTIVATIONS["relu"])
    out = float(activate(output))

    return max(0.0, _last(y) * (1 + out * horizon * 0.1))


def decayed_memory(values: Sequence[float], horizon: int) -> float:
    """
    Recency-weighted average of the last up-to-6 points (weight
    exp(-0.2 * months_back)) plus the window trend times horizon.

    Falls back to the last value below 6 points.
    """
    y = np.asarray(values, dtype=float)
    if len(y) < 6:
        return max(0.0, _last(y))

    window = y[-min(DECAY_WINDOW, len(y) - 1):]
    months_back = np.arange(len(window))[::-1]
    weights = np.exp(-DECAY_RATE * months_back)
    memory = float((window * weights).sum() / weights.sum())

    return max(0.0, memory + stats.weighted_trend(window) * horizon)
