"""
Engine Exceptions

Error taxonomy for the forecast engine. Insufficient data is always raised
to the caller; collaborator failures are raised by integrations and
repositories and caught at the service boundary.
"""

from typing import Optional


class ForecastEngineError(Exception):
    """Base exception for forecast engine errors"""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        self.message = message
        self.original_error = original_error
        super().__init__(self.message)


class InsufficientDataError(ForecastEngineError):
    """Raised when a series is shorter than an operation's minimum"""

    def __init__(self, required: int, actual: int, operation: str = "forecast"):
        self.required = required
        self.actual = actual
        self.operation = operation
        super().__init__(
            f"Need at least {required} data points for {operation}, got {actual}"
        )


class SimulationCancelledError(ForecastEngineError):
    """Raised when a Monte Carlo run is cancelled cooperatively"""

    def __init__(self, completed: int, requested: int):
        self.completed = completed
        self.requested = requested
        super().__init__(
            f"Monte Carlo simulation cancelled after {completed}/{requested} runs"
        )


class ExternalDataError(ForecastEngineError):
    """Raised when external market or economic data cannot be fetched"""
    pass


class RepositoryError(ForecastEngineError):
    """Base exception for prediction record storage errors"""
    pass


class RecordNotFoundError(RepositoryError):
    """Raised when a prediction record is not found"""
    pass
