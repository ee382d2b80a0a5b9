"""
Monte Carlo simulation over perturbed histories.
"""

from .monte_carlo import (
    MonteCarloConfig,
    MonteCarloResult,
    MonteCarloSimulator,
    run_monte_carlo,
)

__all__ = [
    'MonteCarloConfig',
    'MonteCarloResult',
    'MonteCarloSimulator',
    'run_monte_carlo',
]
