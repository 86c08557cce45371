"""Monte Carlo simulation of historical trade returns."""

from equity_bot.simulator.models import (
    BestCase,
    ConfidenceInterval,
    DistributionBucket,
    MonteCarloConfig,
    MonteCarloResult,
    PercentileRow,
    SimulationRun,
    WorstCase,
)
from equity_bot.simulator.monte_carlo import MonteCarloSimulator, extract_returns
from equity_bot.simulator.report import format_monte_carlo_report
from equity_bot.simulator.rng import SeededRandom

__all__ = [
    "BestCase",
    "ConfidenceInterval",
    "DistributionBucket",
    "MonteCarloConfig",
    "MonteCarloResult",
    "MonteCarloSimulator",
    "PercentileRow",
    "SeededRandom",
    "SimulationRun",
    "WorstCase",
    "extract_returns",
    "format_monte_carlo_report",
]
