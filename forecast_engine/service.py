"""
Forecast Service

Async facade over the engine. Fetches external data when the caller has
none, runs the CPU-bound engine in a worker thread, and records every
forecast for later accuracy tracking.

Collaborator failures (external data, storage) are logged and degrade the
response; they never fail a forecast.
"""

import asyncio
import threading
from typing import List, Optional

import httpx
import structlog
from pydantic import BaseModel, Field

from forecast_engine.data.schemas import (
    ActualValue,
    ForecastPoint,
    ForecastRequest,
    PredictionFeedback,
)
from forecast_engine.evaluation.tracking import PredictionTracker
from forecast_engine.exceptions import ExternalDataError, RepositoryError
from forecast_engine.inference.explanation import (
    ModelExplanation,
    explain_prediction,
    generate_summary,
)
from forecast_engine.inference.predictor import ForecastEngine
from forecast_engine.integrations.external_data import (
    ExternalDataClient,
    ExternalDataSources,
    enhance_with_external_data,
)
from forecast_engine.repositories.base import BasePredictionRepository
from forecast_engine.simulation.monte_carlo import (
    MonteCarloConfig,
    MonteCarloResult,
    MonteCarloSimulator,
)

logger = structlog.get_logger(__name__)


class ForecastResponse(BaseModel):
    """Forecast plus the id it was stored under, if storage succeeded."""

    record_id: Optional[str] = None
    points: List[ForecastPoint]
    summary: str
    external_sources: int = Field(default=0, description="External data sources applied")


class ForecastService:
    """
    Service layer for forecasting operations.

    Args:
        engine: Forecast engine; defaults to one using the process-wide weights
        repository: Prediction record storage; forecasts are not recorded without one
        external_client: External data client; external data is skipped without one
    """

    def __init__(
        self,
        engine: Optional[ForecastEngine] = None,
        repository: Optional[BasePredictionRepository] = None,
        external_client: Optional[ExternalDataClient] = None,
    ):
        self.engine = engine or ForecastEngine()
        self.tracker = PredictionTracker(repository) if repository is not None else None
        self.external_client = external_client

    async def _fetch_external(self) -> Optional[ExternalDataSources]:
        try:
            sources = await self.external_client.fetch_all()
        except (ExternalDataError, httpx.HTTPError) as e:
            logger.warning("external_data_unavailable", error=str(e))
            return None
        return sources if sources.available_sources else None

    async def _record(self, points: List[ForecastPoint]) -> Optional[str]:
        try:
            return await self.tracker.store_prediction(points)
        except RepositoryError as e:
            logger.error("prediction_store_failed", error=e.message)
            return None

    async def forecast(self, request: ForecastRequest) -> ForecastResponse:
        """
        Generate, enhance and record a forecast.

        Args:
            request: Forecast request

        Returns:
            ForecastResponse; record_id is None when storage is unavailable

        Raises:
            InsufficientDataError: Fewer than 3 historical points
        """
        sources = None
        if (
            request.external_factors is None
            and request.include_external_factors
            and self.external_client is not None
        ):
            sources = await self._fetch_external()
            if sources is not None:
                request = request.model_copy(update={"external_factors": sources.to_factors()})

        points = await asyncio.to_thread(self.engine.forecast, request)

        if sources is not None:
            points = enhance_with_external_data(points, sources, request.series)

        record_id = await self._record(points) if self.tracker is not None else None

        logger.info(
            "forecast_served",
            horizon=request.horizon_months,
            points=len(points),
            record_id=record_id,
            external_sources=sources.available_sources if sources else 0,
        )

        return ForecastResponse(
            record_id=record_id,
            points=points,
            summary=generate_summary(points),
            external_sources=sources.available_sources if sources else 0,
        )

    async def simulate(
        self,
        request: ForecastRequest,
        config: Optional[MonteCarloConfig] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> MonteCarloResult:
        """Run a Monte Carlo simulation in a worker thread."""
        simulator = MonteCarloSimulator(engine=self.engine)
        return await asyncio.to_thread(simulator.run, request, config, cancel_event)

    def explain(self, request: ForecastRequest, point: ForecastPoint) -> ModelExplanation:
        return explain_prediction(request, point)

    async def record_actuals(self, record_id: str, actuals: List[ActualValue]) -> bool:
        """
        Attach observed values to a stored forecast.

        Returns:
            False when there is no repository or the record does not exist
        """
        if self.tracker is None:
            return False
        return await self.tracker.update_with_actuals(record_id, actuals)

    async def record_feedback(self, record_id: str, feedback: PredictionFeedback) -> bool:
        if self.tracker is None:
            return False
        return await self.tracker.add_feedback(record_id, feedback)

    async def refresh_weights(self):
        """
        Update the engine's weight store from recorded accuracy.

        Returns:
            The new weights, or None when nothing could be learned
        """
        if self.tracker is None or self.engine.weight_store is None:
            return None
        return await self.tracker.refresh_weights(self.engine.weight_store)
