"""
External Data Integrations

Market, economic and sector data used to adjust forecasts.
"""

from forecast_engine.integrations.external_data import (
    ExternalDataClient,
    ExternalDataSources,
    enhance_with_external_data,
)

__all__ = [
    "ExternalDataClient",
    "ExternalDataSources",
    "enhance_with_external_data",
]
