"""Monte Carlo data structures."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

DEFAULT_CONFIDENCE_LEVELS = (0.05, 0.25, 0.5, 0.75, 0.95)


@dataclass(frozen=True)
class MonteCarloConfig:
    simulations: int = 10000
    confidence_levels: Sequence[float] = DEFAULT_CONFIDENCE_LEVELS
    seed: Optional[int] = None


@dataclass(frozen=True)
class SimulationRun:
    final_equity: float
    max_drawdown_pct: float
    total_return: float


@dataclass(frozen=True)
class PercentileRow:
    level: float
    final_equity: float
    max_drawdown: float
    total_return: float


@dataclass(frozen=True)
class DistributionBucket:
    bucket_min: float
    bucket_max: float
    count: int


@dataclass(frozen=True)
class ConfidenceInterval:
    lower: float
    upper: float


@dataclass(frozen=True)
class WorstCase:
    final_equity: float
    max_drawdown_pct: float


@dataclass(frozen=True)
class BestCase:
    final_equity: float
    return_pct: float


@dataclass(frozen=True)
class MonteCarloResult:
    simulations: int
    percentiles: list[PercentileRow]
    expected_value: float
    probability_of_profit: float
    probability_of_ruin: float
    confidence_interval: ConfidenceInterval
    distribution: list[DistributionBucket]
    worst_case: WorstCase
    best_case: BestCase
    starting_equity: float = 1.0
