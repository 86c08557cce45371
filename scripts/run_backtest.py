from __future__ import annotations

import argparse
import json
import logging
from datetime import datetime, timezone
from pathlib import Path

from equity_bot.backtest import BacktestEngine, CsvCandleLoader, generate_summary, generate_symbol_breakdown, result_to_dict
from equity_bot.config import compute_config_hash, load_config, serialize_config
from equity_bot.monitoring import AuditLog, LogNotifier, Monitor
from equity_bot.risk import ClosedTrade, RiskGuard
from equity_bot.simulator import MonteCarloSimulator
from equity_bot.storage import TradeHistory
from equity_bot.strategy import indicator_snapshot, score_technicals


def _monte_carlo_payload(result) -> dict:
    return {
        "simulations": result.simulations,
        "expected_value": result.expected_value,
        "probability_of_profit": result.probability_of_profit,
        "probability_of_ruin": result.probability_of_ruin,
        "confidence_interval": {
            "lower": result.confidence_interval.lower,
            "upper": result.confidence_interval.upper,
        },
        "percentiles": [
            {
                "level": row.level,
                "final_equity": row.final_equity,
                "max_drawdown": row.max_drawdown,
                "total_return": row.total_return,
            }
            for row in result.percentiles
        ],
    }


def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--config", required=True)
    parser.add_argument("--data-dir", help="Directory of <SYMBOL>.csv files (overrides data.candles_dir)")
    parser.add_argument("--output", required=True)
    parser.add_argument("--monte-carlo", action="store_true")
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config_path = Path(args.config)
    output_path = Path(args.output)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    config = load_config(config_path)
    config_hash = compute_config_hash(config_path)
    run_id = f"{config.name}-{datetime.now(timezone.utc).strftime('%Y%m%dT%H%M%SZ')}"
    audit = AuditLog(config.monitoring.audit_log_path, run_id=run_id, config_hash=config_hash)

    loader = CsvCandleLoader(
        args.data_dir or config.data.candles_dir,
        lookback_days=config.data.lookback_days,
        max_workers=config.data.max_workers,
    )
    engine = BacktestEngine(config.backtest, score_technicals, loader, indicator_fn=indicator_snapshot)
    result = engine.run()
    audit.log(
        "backtest_complete",
        {"trades": result.metrics.total_trades, "final_equity": result.metrics.final_equity},
    )

    report = {
        "generated_at_utc": datetime.now(timezone.utc).isoformat(),
        "run_id": run_id,
        "config_path": str(config_path),
        "config_hash": config_hash,
        "config": serialize_config(config),
        "backtest": result_to_dict(result),
    }

    if config.monitoring.trade_history_path:
        history = TradeHistory(config.monitoring.trade_history_path)
        for trade in result.trades:
            history.record_closed_trade(
                ClosedTrade(
                    pnl=trade.pnl,
                    exit_price=trade.exit_price,
                    entry_price=trade.entry_price,
                    symbol=trade.symbol,
                    exit_time=datetime.combine(trade.exit_time, datetime.min.time()),
                )
            )
        guard = RiskGuard(config.risk, trade_history=history, audit_log=audit, monitor=Monitor(LogNotifier()))
        report["next_size_multiplier"] = guard.losing_streak_multiplier()
        history.close()

    text_sections = [generate_summary(result), generate_symbol_breakdown(result)]

    if args.monte_carlo:
        simulator = MonteCarloSimulator()
        mc_result = simulator.simulate_with_sizing(
            result.trades,
            initial_capital=config.backtest.initial_capital,
            config=config.monte_carlo,
        )
        if mc_result is not None:
            report["monte_carlo"] = _monte_carlo_payload(mc_result)
            text_sections.append(simulator.format_report(mc_result))

    output_path.write_text(json.dumps(report, indent=2, default=str), encoding="utf-8")
    print("\n\n".join(text_sections))
    print(f"Wrote {output_path}")


if __name__ == "__main__":
    main()
