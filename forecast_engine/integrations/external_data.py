"""
External Market and Economic Data

Fetches market data, economic indicators and SaaS sector benchmarks from
an HTTP data provider and applies bounded adjustments to forecasts:
- Market: company growth relative to industry growth (0.5 - 1.5)
- Economic: GDP, inflation, interest and unemployment impact (0.7 - 1.3)
- Sector: churn and growth relative to SaaS averages (0.8 - 1.2)

Every fetch is optional; failures are logged and the source is skipped.
An unconfigured client raises ExternalDataError.
"""

import asyncio
from datetime import datetime, timezone
from typing import List, Optional, Type, TypeVar

import httpx
import structlog
from pydantic import BaseModel, ValidationError

from forecast_engine.config import Settings, get_settings
from forecast_engine.data.schemas import (
    ExternalFactors,
    ForecastPoint,
    HistoricalPoint,
    Range,
    ScenarioValue,
    Scenarios,
)
from forecast_engine.exceptions import ExternalDataError
from forecast_engine.inference.confidence import DYNAMIC_CONFIDENCE_MAX, DYNAMIC_CONFIDENCE_MIN
from forecast_engine.models.statistics import growth_rate

logger = structlog.get_logger(__name__)

M = TypeVar("M", bound=BaseModel)

STALE_MARKET_DATA_DAYS = 30
SOURCE_CONFIDENCE_BONUS = 5.0
STALE_DATA_PENALTY = 5.0


class MarketData(BaseModel):
    industry_growth_rate: float  # Annual
    market_size: float
    competitive_index: float  # 0-1
    last_updated: datetime


class EconomicIndicators(BaseModel):
    gdp_growth: float
    inflation_rate: float
    unemployment_rate: float
    interest_rate: float
    last_updated: datetime


class SectorMetrics(BaseModel):
    saas_growth_rate: float  # Annual
    average_churn_rate: float  # Monthly
    average_ltv: float
    average_cac: float
    last_updated: datetime


class ExternalDataSources(BaseModel):
    """Whatever external data could be fetched; missing sources are None."""

    market_data: Optional[MarketData] = None
    economic_indicators: Optional[EconomicIndicators] = None
    sector_metrics: Optional[SectorMetrics] = None

    @property
    def available_sources(self) -> int:
        return sum(
            source is not None
            for source in (self.market_data, self.economic_indicators, self.sector_metrics)
        )

    def to_factors(self) -> ExternalFactors:
        """
        Derive scenario factors from the fetched data.

        Market growth and competitive pressure come from market data; the
        economic index is the economic adjustment capped at 1.
        """
        factors = ExternalFactors()
        updates = {}
        if self.market_data is not None:
            updates["market_growth"] = self.market_data.industry_growth_rate
            updates["competitive_pressure"] = min(1.0, max(0.0, self.market_data.competitive_index))
        if self.economic_indicators is not None:
            updates["economic_index"] = min(1.0, economic_adjustment(self.economic_indicators))
        return factors.model_copy(update=updates)


class ExternalDataClient:
    """
    Async client for the external data provider.

    Usage:
        async with ExternalDataClient(base_url="https://data.example.com") as client:
            sources = await client.fetch_all()
    """

    MARKET_PATH = "/market"
    ECONOMIC_PATH = "/economic-indicators"
    SECTOR_PATH = "/sector-metrics"

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        settings: Optional[Settings] = None,
    ):
        settings = settings or get_settings()
        self._base_url = base_url or settings.external_data_url or ""
        self._api_key = api_key or settings.external_data_api_key
        self._timeout = timeout if timeout is not None else settings.external_data_timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        if not self._base_url:
            raise ExternalDataError("External data URL is not configured")
        if self._client is None or self._client.is_closed:
            headers = {"Authorization": f"Bearer {self._api_key}"} if self._api_key else {}
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=httpx.Timeout(self._timeout),
                headers=headers,
                transport=self._transport,
            )
        return self._client

    async def close(self):
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.close()

    async def _fetch(self, path: str, model: Type[M]) -> Optional[M]:
        try:
            client = await self._get_client()
            response = await client.get(path)
            response.raise_for_status()
            return model.model_validate(response.json())
        except (httpx.HTTPError, ValidationError, ValueError) as e:
            logger.warning("external_data_fetch_failed", path=path, error=str(e))
            return None

    async def fetch_market_data(self) -> Optional[MarketData]:
        return await self._fetch(self.MARKET_PATH, MarketData)

    async def fetch_economic_indicators(self) -> Optional[EconomicIndicators]:
        return await self._fetch(self.ECONOMIC_PATH, EconomicIndicators)

    async def fetch_sector_metrics(self) -> Optional[SectorMetrics]:
        return await self._fetch(self.SECTOR_PATH, SectorMetrics)

    async def fetch_all(
        self,
        market: bool = True,
        economic: bool = True,
        sector: bool = True,
    ) -> ExternalDataSources:
        """Fetch the enabled sources concurrently."""

        async def skip():
            return None

        market_data, indicators, metrics = await asyncio.gather(
            self.fetch_market_data() if market else skip(),
            self.fetch_economic_indicators() if economic else skip(),
            self.fetch_sector_metrics() if sector else skip(),
        )
        sources = ExternalDataSources(
            market_data=market_data,
            economic_indicators=indicators,
            sector_metrics=metrics,
        )
        logger.info("external_data_fetched", sources=sources.available_sources)
        return sources


def _clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(upper, value))


def churn_rate(series: List[HistoricalPoint]) -> float:
    """Average monthly customer loss relative to the average customer count."""
    if len(series) < 2:
        return 0.0
    changes = [b.customers - a.customers for a, b in zip(series, series[1:])]
    avg_customers = sum(p.customers for p in series) / len(series)
    if avg_customers == 0:
        return 0.0
    return max(0.0, -(sum(changes) / len(changes)) / avg_customers)


def market_adjustment(market: MarketData, series: List[HistoricalPoint]) -> float:
    """Company vs. industry monthly growth, damped by competition."""
    industry_monthly = market.industry_growth_rate / 12
    company = growth_rate([p.revenue for p in series])
    ratio = company / industry_monthly if industry_monthly != 0 else 1.0
    competitive = 1 - market.competitive_index * 0.1
    return _clamp(ratio * competitive, 0.5, 1.5)


def economic_adjustment(indicators: EconomicIndicators) -> float:
    gdp = 1 + indicators.gdp_growth * 0.5
    inflation = 1 - indicators.inflation_rate * 0.3
    interest = 1 - indicators.interest_rate * 0.2
    unemployment = 1 - indicators.unemployment_rate * 0.4
    return _clamp(gdp * inflation * interest * unemployment, 0.7, 1.3)


def sector_adjustment(sector: SectorMetrics, series: List[HistoricalPoint]) -> float:
    """Average of churn (lower is better) and growth comparisons to the sector."""
    churn = sector.average_churn_rate / max(churn_rate(series), 0.01)
    sector_monthly = sector.saas_growth_rate / 12
    company = growth_rate([p.revenue for p in series])
    growth = company / sector_monthly if sector_monthly != 0 else 1.0
    return _clamp((churn + growth) / 2, 0.8, 1.2)


def adjust_confidence(
    confidence: float,
    sources: ExternalDataSources,
    now: Optional[datetime] = None,
) -> float:
    """+5 per available source, -5 when market data is over 30 days old; clamp [15, 95]."""
    adjusted = confidence + SOURCE_CONFIDENCE_BONUS * sources.available_sources

    if sources.market_data is not None:
        now = now or datetime.now(timezone.utc)
        updated = sources.market_data.last_updated
        if updated.tzinfo is None:
            updated = updated.replace(tzinfo=timezone.utc)
        if (now - updated).days > STALE_MARKET_DATA_DAYS:
            adjusted -= STALE_DATA_PENALTY

    return _clamp(adjusted, DYNAMIC_CONFIDENCE_MIN, DYNAMIC_CONFIDENCE_MAX)


def _scale_range(value_range: Range, multiplier: float) -> Range:
    return Range(
        optimistic=round(value_range.optimistic * multiplier),
        pessimistic=round(value_range.pessimistic * multiplier),
    )


def _scale_scenarios(scenarios: Optional[Scenarios], multiplier: float) -> Optional[Scenarios]:
    if scenarios is None:
        return None

    def scale(value: ScenarioValue) -> ScenarioValue:
        return ScenarioValue(
            revenue=round(value.revenue * multiplier),
            customers=round(value.customers * multiplier),
        )

    return Scenarios(
        optimistic=scale(scenarios.optimistic),
        realistic=scale(scenarios.realistic),
        pessimistic=scale(scenarios.pessimistic),
    )


def enhance_with_external_data(
    points: List[ForecastPoint],
    sources: ExternalDataSources,
    series: List[HistoricalPoint],
    now: Optional[datetime] = None,
) -> List[ForecastPoint]:
    """
    Apply market, economic and sector adjustments to forecast values.

    Revenue, customers, their ranges and the scenario bands are scaled by
    the same multiplier, so every range still brackets its value.
    Component forecasts and cash-flow metrics keep the engine output.

    Args:
        points: Forecast from the engine
        sources: Fetched external data
        series: History the forecast was built from
        now: Reference time for data freshness

    Returns:
        New forecast points; the inputs are not modified
    """
    multiplier = 1.0
    if sources.market_data is not None:
        multiplier *= market_adjustment(sources.market_data, series)
    if sources.economic_indicators is not None:
        multiplier *= economic_adjustment(sources.economic_indicators)
    if sources.sector_metrics is not None:
        multiplier *= sector_adjustment(sources.sector_metrics, series)

    enhanced = [
        point.model_copy(update={
            "revenue": round(point.revenue * multiplier),
            "customers": round(point.customers * multiplier),
            "revenue_range": _scale_range(point.revenue_range, multiplier),
            "customer_range": _scale_range(point.customer_range, multiplier),
            "scenarios": _scale_scenarios(point.scenarios, multiplier),
            "confidence": adjust_confidence(point.confidence, sources, now),
        })
        for point in points
    ]

    logger.debug(
        "forecast_enhanced_with_external_data",
        sources=sources.available_sources,
        multiplier=round(multiplier, 4),
    )
    return enhanced
