"""
Pytest Configuration and Fixtures for Forecast Engine Tests

Provides shared fixtures for:
- Historical series (short growth series, two years of seasonal data)
- Cash-flow inputs
- Engines with fixed ensemble weights
"""

from datetime import date
from typing import List

import numpy as np
import pytest

from forecast_engine.data.schemas import (
    CashFlowInputs,
    ForecastRequest,
    HistoricalPoint,
    add_months,
)


def pytest_configure(config):
    config.addinivalue_line("markers", "slow: marks tests as slow")
    config.addinivalue_line("markers", "integration: marks tests that combine several modules")


START = date(2024, 1, 1)


def make_series(revenues, customers, start: date = START) -> List[HistoricalPoint]:
    return [
        HistoricalPoint(date=add_months(start, i), revenue=float(r), customers=float(c))
        for i, (r, c) in enumerate(zip(revenues, customers))
    ]


# ============================================================================
# Data Fixtures
# ============================================================================


@pytest.fixture
def growth_series() -> List[HistoricalPoint]:
    """
    Six months of steady growth.

    Revenue grows 4% and customers 2% per month from 10,000 and 100.
    """
    months = np.arange(6)
    return make_series(10000 * 1.04 ** months, 100 * 1.02 ** months)


@pytest.fixture
def seasonal_series() -> List[HistoricalPoint]:
    """
    Two years of monthly data with a yearly cycle on top of linear growth.

    Revenue peaks in April and troughs in October.
    """
    months = np.arange(24)
    seasonal = 1 + 0.2 * np.sin(2 * np.pi * months / 12)
    revenue = (20000 + 200 * months) * seasonal
    customers = 200 + 3 * months
    return make_series(revenue, customers)


@pytest.fixture
def cash_inputs() -> CashFlowInputs:
    return CashFlowInputs(
        cash_in_bank=500000,
        operating_expenses=50000,
        operating_expense_growth_rate=0.0,
        gross_margin_rate=0.7,
    )


@pytest.fixture
def growth_request(growth_series) -> ForecastRequest:
    """Three-month revenue forecast on fresh data."""
    return ForecastRequest(
        series=growth_series,
        horizon_months=3,
        target="revenue",
        seed=42,
        as_of=add_months(growth_series[-1].date, 1),
    )


@pytest.fixture
def series_factory():
    """Build a monthly series from revenue and customer sequences."""
    return make_series


# ============================================================================
# Engine Fixtures
# ============================================================================


@pytest.fixture
def default_weights():
    from forecast_engine.models.ensemble import EnsembleWeights

    return EnsembleWeights()


@pytest.fixture
def engine(default_weights):
    """Engine pinned to default weights so tests never touch the global store."""
    from forecast_engine.inference.predictor import ForecastEngine

    return ForecastEngine(weights=default_weights)
