"""
Forecasting Models

This package contains:
- Statistical estimators (trend, seasonality, volatility, momentum)
- Heuristic sub-forecasters
- Weighted ensemble with versioned weights
"""

from .statistics import SeriesStatistics

from .ensemble import (
    COMPONENTS,
    EnsembleCombiner,
    EnsembleWeights,
    WeightStore,
    get_weight_store,
)

__all__ = [
    'SeriesStatistics',
    'COMPONENTS',
    'EnsembleCombiner',
    'EnsembleWeights',
    'WeightStore',
    'get_weight_store',
]
