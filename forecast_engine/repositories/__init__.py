"""
Repository Pattern Implementations

Storage for prediction records used by accuracy tracking.
"""

from forecast_engine.repositories.base import (
    BasePredictionRepository,
    RepositoryError,
    RecordNotFoundError,
)

from forecast_engine.repositories.prediction_repository import (
    InMemoryPredictionRepository,
    JsonFilePredictionRepository,
)

__all__ = [
    # Base class and exceptions
    "BasePredictionRepository",
    "RepositoryError",
    "RecordNotFoundError",
    # Implementations
    "InMemoryPredictionRepository",
    "JsonFilePredictionRepository",
]
