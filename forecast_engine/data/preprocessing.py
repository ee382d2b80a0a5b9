"""
Series Preprocessing for SaaS Metric Forecasting

Cleans short monthly series before estimation:
- Outlier clipping with the interquartile rule
- Centered 3-point smoothing of interior points

Both steps keep the series length unchanged.
"""

from typing import List, Sequence

import numpy as np
import structlog

from forecast_engine.data.schemas import HistoricalPoint

logger = structlog.get_logger(__name__)

IQR_MULTIPLIER = 1.5
MIN_POINTS_FOR_CLIPPING = 4
MIN_POINTS_FOR_SMOOTHING = 3


def clip_outliers(values: Sequence[float]) -> np.ndarray:
    """
    Clip values outside [Q1 - 1.5*IQR, Q3 + 1.5*IQR].

    Quartiles are read from the sorted series at floor(n*0.25) and
    floor(n*0.75). Applying the clip twice gives the same result as once,
    since the quartile positions never move.

    Args:
        values: Raw series

    Returns:
        Clipped copy of the series
    """
    arr = np.asarray(values, dtype=float).copy()
    n = len(arr)
    if n < MIN_POINTS_FOR_CLIPPING:
        return arr

    ordered = np.sort(arr)
    q1 = ordered[int(np.floor(n * 0.25))]
    q3 = ordered[int(np.floor(n * 0.75))]
    iqr = q3 - q1

    lower = q1 - IQR_MULTIPLIER * iqr
    upper = q3 + IQR_MULTIPLIER * iqr

    return np.clip(arr, lower, upper)


def smooth(values: Sequence[float]) -> np.ndarray:
    """Centered 3-point moving average on interior points; endpoints unchanged."""
    arr = np.asarray(values, dtype=float)
    smoothed = arr.copy()
    if len(arr) < MIN_POINTS_FOR_SMOOTHING:
        return smoothed

    smoothed[1:-1] = (arr[:-2] + arr[1:-1] + arr[2:]) / 3
    return smoothed


def preprocess_series(values: Sequence[float]) -> np.ndarray:
    """Clip outliers, then smooth."""
    return smooth(clip_outliers(values))


class SeriesPreprocessor:
    """
    Applies outlier clipping and smoothing to the revenue and customer
    columns of a historical series.

    Other fields (ARPU, churn, CAC) are passed through untouched.
    """

    def transform(self, series: List[HistoricalPoint]) -> List[HistoricalPoint]:
        if not series:
            return []

        revenues = preprocess_series([p.revenue for p in series])
        customers = preprocess_series([p.customers for p in series])

        # Clipping can only pull values toward the quartiles, so a clipped
        # non-negative series stays non-negative
        cleaned = [
            point.model_copy(update={
                "revenue": max(0.0, float(revenues[i])),
                "customers": max(0.0, float(customers[i])),
            })
            for i, point in enumerate(series)
        ]

        logger.debug("series_preprocessed", points=len(cleaned))
        return cleaned
