"""
Input models and series preprocessing.
"""

from .preprocessing import SeriesPreprocessor, clip_outliers, preprocess_series, smooth
from .schemas import (
    ActualValue,
    CashFlowInputs,
    CashFlowMetrics,
    ExternalFactors,
    ForecastPoint,
    ForecastRequest,
    ForecastTarget,
    HistoricalPoint,
    PredictionRecord,
)

__all__ = [
    'SeriesPreprocessor',
    'clip_outliers',
    'preprocess_series',
    'smooth',
    'ActualValue',
    'CashFlowInputs',
    'CashFlowMetrics',
    'ExternalFactors',
    'ForecastPoint',
    'ForecastRequest',
    'ForecastTarget',
    'HistoricalPoint',
    'PredictionRecord',
]
