"""
Monte Carlo Simulator

Characterizes forecast uncertainty by re-running the pipeline on many
randomly perturbed copies of the history, then aggregating percentiles,
mean and standard deviation per forecast month. Also produces fixed
optimistic / pessimistic reruns and five named stress tests.

Every simulation gets its own child seed spawned from one SeedSequence,
so a seeded run gives identical results whether simulations execute
serially or on a thread pool.
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional

import numpy as np
import structlog
from pydantic import BaseModel

from forecast_engine.config import Settings, get_settings
from forecast_engine.data.preprocessing import SeriesPreprocessor
from forecast_engine.data.schemas import (
    CashFlowInputs,
    ExternalFactors,
    ForecastPoint,
    ForecastRequest,
    HistoricalPoint,
)
from forecast_engine.exceptions import InsufficientDataError, SimulationCancelledError
from forecast_engine.inference.predictor import ForecastEngine
from forecast_engine.models.ensemble import EnsembleWeights
from forecast_engine.models.statistics import volatility

logger = structlog.get_logger(__name__)

MIN_POINTS = 3
NOISE_SCALE = 0.5

STRESS_SCENARIOS = [
    "Economic Recession",
    "High Competition",
    "Market Growth Slowdown",
    "Increased Churn",
    "Cost Inflation",
]


@dataclass
class MonteCarloConfig:
    """Configuration for a Monte Carlo run."""

    simulations: int = 1000
    percentiles: List[int] = field(default_factory=lambda: [5, 25, 50, 75, 95])
    seed: Optional[int] = None
    max_workers: int = 1


class SimulationPoint(BaseModel):
    """Aggregated value across simulations for one forecast month."""

    date: date
    revenue: float
    customers: float
    confidence: float


class StressTestResults(BaseModel):
    scenarios: List[str]
    results: Dict[str, List[ForecastPoint]]


class MonteCarloResult(BaseModel):
    simulations: int
    optimistic: List[ForecastPoint]
    realistic: List[ForecastPoint]
    pessimistic: List[ForecastPoint]
    percentile_bands: Dict[int, List[SimulationPoint]]
    mean: List[SimulationPoint]
    standard_deviation: List[float]
    customer_standard_deviation: List[float]
    stress_tests: StressTestResults


def perturb_series(
    series: List[HistoricalPoint],
    revenue_volatility: float,
    customer_volatility: float,
    rng: np.random.Generator,
) -> List[HistoricalPoint]:
    """Multiply each value by 1 + (u - 0.5) * volatility * 0.5, u ~ U(0, 1)."""
    n = len(series)
    revenue_noise = 1 + (rng.random(n) - 0.5) * revenue_volatility * NOISE_SCALE
    customer_noise = 1 + (rng.random(n) - 0.5) * customer_volatility * NOISE_SCALE

    return [
        point.model_copy(update={
            "revenue": max(0.0, point.revenue * float(revenue_noise[i])),
            "customers": max(0.0, point.customers * float(customer_noise[i])),
        })
        for i, point in enumerate(series)
    ]


def _percentile_index(percentile: float, n: int) -> int:
    return min(int(np.floor(percentile / 100 * n)), n - 1)


class MonteCarloSimulator:
    """
    Runs perturbed forecasts and aggregates them.

    Args:
        engine: Forecast pipeline to re-run; defaults to one using the
            process-wide weights
        settings: Caps and stress-test defaults
    """

    def __init__(
        self,
        engine: Optional[ForecastEngine] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.engine = engine or ForecastEngine(settings=self.settings)
        self.preprocessor = SeriesPreprocessor()

    def run(
        self,
        request: ForecastRequest,
        config: Optional[MonteCarloConfig] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> MonteCarloResult:
        """
        Run the simulation.

        Args:
            request: Forecast request to simulate
            config: Simulation count, percentiles, seed and worker count
            cancel_event: When set, the run stops and raises

        Returns:
            MonteCarloResult

        Raises:
            InsufficientDataError: Fewer than 3 historical points
            SimulationCancelledError: `cancel_event` was set mid-run
        """
        if len(request.series) < MIN_POINTS:
            raise InsufficientDataError(MIN_POINTS, len(request.series), "Monte Carlo simulation")

        config = config or MonteCarloConfig(simulations=self.settings.default_simulations)
        simulations = max(1, config.simulations)
        if simulations > self.settings.max_simulations:
            logger.warning(
                "monte_carlo_simulations_capped",
                requested=simulations,
                cap=self.settings.max_simulations,
            )
            simulations = self.settings.max_simulations

        weights = self.engine.current_weights()
        seed = config.seed if config.seed is not None else request.seed

        runs = self._simulate(request, simulations, seed, weights, config.max_workers, cancel_event)

        revenue = np.array([[p.revenue for p in run] for run in runs])
        customers = np.array([[p.customers for p in run] for run in runs])
        confidence = np.array([[p.confidence for p in run] for run in runs])
        dates = [p.date for p in runs[0]]

        percentile_bands = {
            int(pct): self._percentile_band(dates, revenue, customers, confidence, pct)
            for pct in config.percentiles
        }
        mean = [
            SimulationPoint(
                date=dates[i],
                revenue=round(float(revenue[:, i].mean())),
                customers=round(float(customers[:, i].mean())),
                confidence=round(float(confidence[:, i].mean()), 1),
            )
            for i in range(len(dates))
        ]

        result = MonteCarloResult(
            simulations=simulations,
            optimistic=self._rerun(request, weights, external_factors=self._shift_factors(request, 1)),
            realistic=self._rerun(request, weights),
            pessimistic=self._rerun(request, weights, external_factors=self._shift_factors(request, -1)),
            percentile_bands=percentile_bands,
            mean=mean,
            standard_deviation=[float(v) for v in revenue.std(axis=0)],
            customer_standard_deviation=[float(v) for v in customers.std(axis=0)],
            stress_tests=self.run_stress_tests(request, weights),
        )

        logger.info(
            "monte_carlo_completed",
            simulations=simulations,
            horizon=request.horizon_months,
            workers=config.max_workers,
        )
        return result

    def _simulate(
        self,
        request: ForecastRequest,
        simulations: int,
        seed: Optional[int],
        weights: EnsembleWeights,
        max_workers: int,
        cancel_event: Optional[threading.Event],
    ) -> List[List[ForecastPoint]]:
        # Noise is sized from the cleaned history and applied to the raw
        # series; engine.forecast does the preprocessing
        cleaned = self.preprocessor.transform(request.series)
        revenue_vol = volatility([p.revenue for p in cleaned])
        customer_vol = volatility([p.customers for p in cleaned])
        children = np.random.SeedSequence(seed).spawn(simulations)

        def simulate_one(child: np.random.SeedSequence) -> List[ForecastPoint]:
            rng = np.random.Generator(np.random.PCG64(child))
            noisy = perturb_series(request.series, revenue_vol, customer_vol, rng)
            return self.engine.forecast(
                request.model_copy(update={"series": noisy}), weights=weights, rng=rng
            )

        def cancelled() -> bool:
            return cancel_event is not None and cancel_event.is_set()

        runs: List[List[ForecastPoint]] = []

        if max_workers <= 1:
            for child in children:
                if cancelled():
                    raise SimulationCancelledError(len(runs), simulations)
                runs.append(simulate_one(child))
            return runs

        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = [executor.submit(simulate_one, child) for child in children]
            for future in futures:
                if cancelled():
                    for pending in futures:
                        pending.cancel()
                    raise SimulationCancelledError(len(runs), simulations)
                runs.append(future.result())

        return runs

    @staticmethod
    def _percentile_band(
        dates: List[date],
        revenue: np.ndarray,
        customers: np.ndarray,
        confidence: np.ndarray,
        percentile: float,
    ) -> List[SimulationPoint]:
        n = revenue.shape[0]
        idx = _percentile_index(percentile, n)
        return [
            SimulationPoint(
                date=dates[i],
                revenue=float(np.sort(revenue[:, i])[idx]),
                customers=float(np.sort(customers[:, i])[idx]),
                confidence=float(np.sort(confidence[:, i])[idx]),
            )
            for i in range(len(dates))
        ]

    @staticmethod
    def _shift_factors(request: ForecastRequest, direction: int) -> ExternalFactors:
        """Shift external factors up (direction=1) or down (direction=-1)."""
        base = request.external_factors or ExternalFactors()
        if direction > 0:
            return base.model_copy(update={
                "market_growth": base.market_growth + 0.25,
                "economic_index": min(1.0, base.economic_index + 0.2),
                "competitive_pressure": max(0.0, base.competitive_pressure - 0.2),
            })
        return base.model_copy(update={
            "market_growth": max(0.0, base.market_growth - 0.25),
            "economic_index": max(0.0, base.economic_index - 0.2),
            "competitive_pressure": min(1.0, base.competitive_pressure + 0.2),
        })

    def _rerun(
        self,
        request: ForecastRequest,
        weights: EnsembleWeights,
        **updates,
    ) -> List[ForecastPoint]:
        variant = request.model_copy(update=updates) if updates else request
        return self.engine.forecast(variant, weights=weights)

    def run_stress_tests(
        self,
        request: ForecastRequest,
        weights: Optional[EnsembleWeights] = None,
    ) -> StressTestResults:
        """Re-run the pipeline once per named stress scenario."""
        weights = weights or self.engine.current_weights()
        base = request.external_factors or ExternalFactors()

        cash = request.cash_flow_inputs or CashFlowInputs(
            cash_in_bank=0.0,
            operating_expenses=self.settings.default_operating_expenses,
            operating_expense_growth_rate=self.settings.default_expense_growth_rate,
            gross_margin_rate=self.settings.default_gross_margin_rate,
        )
        inflated = cash.model_copy(update={
            "operating_expenses": cash.operating_expenses * 1.3,
            "operating_expense_growth_rate": cash.operating_expense_growth_rate + 0.1,
        })

        churned = [
            point.model_copy(update={"customers": point.customers * 0.8})
            for point in request.series
        ]

        variants = {
            "Economic Recession": {
                "external_factors": base.model_copy(update={"economic_index": 0.3, "market_growth": -0.1}),
            },
            "High Competition": {
                "external_factors": base.model_copy(update={"competitive_pressure": 0.9}),
            },
            "Market Growth Slowdown": {
                "external_factors": base.model_copy(update={"market_growth": 0.02}),
            },
            "Increased Churn": {"series": churned},
            "Cost Inflation": {"cash_flow_inputs": inflated},
        }

        results = {
            name: self._rerun(request, weights, **variants[name])
            for name in STRESS_SCENARIOS
        }
        return StressTestResults(scenarios=list(STRESS_SCENARIOS), results=results)


def run_monte_carlo(
    request: ForecastRequest,
    config: Optional[MonteCarloConfig] = None,
    cancel_event: Optional[threading.Event] = None,
) -> MonteCarloResult:
    """Run a Monte Carlo simulation with the process-wide weights."""
    return MonteCarloSimulator().run(request, config, cancel_event)
