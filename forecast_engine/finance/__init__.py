"""
Cash flow, burn rate, runway and break-even projections.
"""

from .cash_flow import CashFlowForecast, cash_flow_metrics, project_cash_flow

__all__ = [
    'CashFlowForecast',
    'cash_flow_metrics',
    'project_cash_flow',
]
