"""Bootstrap Monte Carlo simulation of trade sequences."""

from __future__ import annotations

import bisect
import logging
import math
import random
from typing import Any, Iterable, Mapping, Optional, Union

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
from equity_bot.simulator.report import format_monte_carlo_report
from equity_bot.simulator.rng import SeededRandom

logger = logging.getLogger(__name__)

HISTOGRAM_BUCKETS = 20
RUIN_DRAWDOWN = 0.5
CONFIDENCE_LOWER = 0.05
CONFIDENCE_UPPER = 0.95

RandomSource = Union[random.Random, SeededRandom]


def extract_returns(trades: Iterable[Any]) -> list[float]:
    """Per-trade return fractions, skipping trades without a usable value."""
    returns: list[float] = []
    for trade in trades:
        if isinstance(trade, Mapping):
            value = trade.get("pnl_pct")
        else:
            value = getattr(trade, "pnl_pct", None)
        if value is None or isinstance(value, bool):
            continue
        try:
            value = float(value)
        except (TypeError, ValueError):
            continue
        if math.isfinite(value):
            returns.append(value)
    return returns


def bootstrap_run(returns: list[float], start: float, rng: RandomSource) -> SimulationRun:
    equity = start
    peak = start
    max_drawdown = 0.0
    for _ in range(len(returns)):
        equity *= 1.0 + returns[rng.randrange(len(returns))]
        if equity > peak:
            peak = equity
        drawdown = (peak - equity) / peak if peak > 0 else 0.0
        if drawdown > max_drawdown:
            max_drawdown = drawdown
    return SimulationRun(
        final_equity=equity,
        max_drawdown_pct=max_drawdown,
        total_return=equity / start - 1.0,
    )


def order_statistic(runs: list[SimulationRun], level: float) -> SimulationRun:
    return runs[math.floor(level * (len(runs) - 1))]


def build_histogram(sorted_equities: list[float], buckets: int = HISTOGRAM_BUCKETS) -> list[tuple[float, float, int]]:
    """Equal-width histogram over ``[min, max]``; the last bucket includes the max."""
    low = sorted_equities[0]
    width = (sorted_equities[-1] - low) / buckets
    histogram = []
    for index in range(buckets):
        bucket_min = low + index * width
        bucket_max = low + (index + 1) * width
        start = bisect.bisect_left(sorted_equities, bucket_min)
        if index == buckets - 1:
            count = len(sorted_equities) - start
        else:
            count = bisect.bisect_left(sorted_equities, bucket_max) - start
        histogram.append((bucket_min, bucket_max, count))
    return histogram


class MonteCarloSimulator:
    def simulate(
        self,
        trades: Iterable[Any],
        config: Optional[MonteCarloConfig] = None,
    ) -> Optional[MonteCarloResult]:
        returns = extract_returns(trades)
        if not returns:
            logger.warning("No usable trade returns for Monte Carlo simulation")
            return None
        return self._run(returns, 1.0, config or MonteCarloConfig(), decimals=4)

    def simulate_with_sizing(
        self,
        trades: Iterable[Any],
        initial_capital: float = 10000.0,
        config: Optional[MonteCarloConfig] = None,
    ) -> Optional[MonteCarloResult]:
        if initial_capital <= 0:
            raise ValueError("initial_capital must be positive")
        returns = extract_returns(trades)
        if not returns:
            logger.warning("No usable trade returns for compounded Monte Carlo simulation")
            return None
        return self._run(returns, float(initial_capital), config or MonteCarloConfig(), decimals=2)

    def get_confidence_interval(self, result: MonteCarloResult, level: float) -> Optional[ConfidenceInterval]:
        if level < 0 or level > 1:
            logger.warning("Invalid confidence level %s, must be within [0, 1]", level)
            return None

        lower_level = (1 - level) / 2
        upper_level = 1 - lower_level
        tolerance = 1e-9
        lower = next((p for p in result.percentiles if p.level >= lower_level - tolerance), None)
        upper = next((p for p in result.percentiles if p.level >= upper_level - tolerance), None)
        if lower is None or upper is None:
            logger.warning("No stored percentiles bracket confidence level %s", level)
            return None
        return ConfidenceInterval(lower=lower.final_equity, upper=upper.final_equity)

    def format_report(self, result: MonteCarloResult) -> str:
        return format_monte_carlo_report(result)

    def _run(
        self,
        returns: list[float],
        start: float,
        config: MonteCarloConfig,
        decimals: int,
    ) -> MonteCarloResult:
        if config.simulations <= 0:
            raise ValueError("simulations must be positive")
        for level in config.confidence_levels:
            if not 0.0 <= level <= 1.0:
                raise ValueError(f"confidence level {level} must be within [0, 1]")

        rng: RandomSource = SeededRandom(config.seed) if config.seed is not None else random.Random()
        logger.info(
            "Running Monte Carlo simulation: %d trades, %d simulations, start %.2f",
            len(returns),
            config.simulations,
            start,
        )

        runs = [bootstrap_run(returns, start, rng) for _ in range(config.simulations)]
        runs.sort(key=lambda run: run.final_equity)
        total = len(runs)

        percentiles = []
        for level in config.confidence_levels:
            run = order_statistic(runs, level)
            percentiles.append(
                PercentileRow(
                    level=round(level, 4),
                    final_equity=round(run.final_equity, decimals),
                    max_drawdown=round(run.max_drawdown_pct, 4),
                    total_return=round(run.total_return, 4),
                )
            )

        equities = [run.final_equity for run in runs]
        expected_value = round(sum(equities) / total, decimals)
        probability_of_profit = round(sum(1 for value in equities if value > start) / total, 4)
        probability_of_ruin = round(sum(1 for run in runs if run.max_drawdown_pct > RUIN_DRAWDOWN) / total, 4)
        confidence_interval = ConfidenceInterval(
            lower=round(order_statistic(runs, CONFIDENCE_LOWER).final_equity, decimals),
            upper=round(order_statistic(runs, CONFIDENCE_UPPER).final_equity, decimals),
        )
        distribution = [
            DistributionBucket(
                bucket_min=round(bucket_min, decimals),
                bucket_max=round(bucket_max, decimals),
                count=count,
            )
            for bucket_min, bucket_max, count in build_histogram(equities)
        ]
        worst_case = WorstCase(
            final_equity=round(runs[0].final_equity, decimals),
            max_drawdown_pct=round(max(run.max_drawdown_pct for run in runs), 4),
        )
        best_case = BestCase(
            final_equity=round(runs[-1].final_equity, decimals),
            return_pct=round(runs[-1].total_return, 4),
        )

        logger.info(
            "Monte Carlo complete: expected %.4f, P(profit) %.4f, P(ruin) %.4f",
            expected_value,
            probability_of_profit,
            probability_of_ruin,
        )
        return MonteCarloResult(
            simulations=total,
            percentiles=percentiles,
            expected_value=expected_value,
            probability_of_profit=probability_of_profit,
            probability_of_ruin=probability_of_ruin,
            confidence_interval=confidence_interval,
            distribution=distribution,
            worst_case=worst_case,
            best_case=best_case,
            starting_equity=start,
        )
