"""Human-readable Monte Carlo reports."""

from __future__ import annotations

from equity_bot.simulator.models import MonteCarloResult

BAR_WIDTH = 50


def format_monte_carlo_report(result: MonteCarloResult) -> str:
    start = result.starting_equity
    places = 4 if start == 1.0 else 2
    lines = [
        "=== Monte Carlo Simulation Report ===",
        "",
        f"Simulations: {result.simulations:,}",
        f"Starting Equity: {start:.{places}f}",
        f"Expected Value: {result.expected_value:.{places}f} "
        f"({(result.expected_value / start - 1) * 100:.2f}%)",
        f"Probability of Profit: {result.probability_of_profit * 100:.2f}%",
        f"Probability of Ruin (DD > 50%): {result.probability_of_ruin * 100:.2f}%",
        "",
        f"90% Confidence Interval (5th-95th): [{result.confidence_interval.lower:.{places}f}, "
        f"{result.confidence_interval.upper:.{places}f}]",
        "",
        "Percentiles:",
    ]
    for row in result.percentiles:
        label = f"{row.level * 100:.0f}"
        lines.append(
            f"  {label:>3}th: Equity={row.final_equity:.{places}f} | "
            f"Return={row.total_return * 100:.2f}% | MaxDD={row.max_drawdown * 100:.2f}%"
        )
    lines.extend(
        [
            "",
            "Worst Case:",
            f"  Final Equity: {result.worst_case.final_equity:.{places}f}",
            f"  Max Drawdown: {result.worst_case.max_drawdown_pct * 100:.2f}%",
            "",
            "Best Case:",
            f"  Final Equity: {result.best_case.final_equity:.{places}f}",
            f"  Return: {result.best_case.return_pct * 100:.2f}%",
            "",
            f"Distribution ({len(result.distribution)} buckets):",
        ]
    )
    for bucket in result.distribution:
        share = bucket.count / result.simulations
        bar = "#" * int(share * BAR_WIDTH)
        lines.append(
            f"  [{bucket.bucket_min:.2f} - {bucket.bucket_max:.2f}]: "
            f"{bucket.count:>5} ({share * 100:>5.1f}%) {bar}"
        )
    lines.append("")
    return "\n".join(lines)
