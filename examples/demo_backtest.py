import math
from datetime import date, timedelta

from equity_bot.backtest import BacktestConfig, BacktestEngine, Candle, InMemoryCandleLoader, generate_summary
from equity_bot.exit_conditions import ExitContext, evaluate_all, parse
from equity_bot.risk import PortfolioState, RiskConfig, RiskGuard, Side, TradeProposal
from equity_bot.simulator import MonteCarloConfig, MonteCarloSimulator
from equity_bot.strategy import indicator_snapshot, score_technicals


def synthetic_candles(start: date, days: int, base: float, drift: float) -> list[Candle]:
    candles = []
    price = base
    for offset in range(days):
        wave = math.sin(offset / 6.0) * base * 0.02
        close = price + wave
        candles.append(
            Candle(
                date=start + timedelta(days=offset),
                open=close * 0.998,
                high=close * 1.01,
                low=close * 0.99,
                close=close,
                volume=1_000_000 + 50_000 * (offset % 7),
            )
        )
        price *= 1.0 + drift
    return candles


start = date(2024, 1, 1)
data = {
    "AAPL": synthetic_candles(start, 240, 180.0, 0.001),
    "MSFT": synthetic_candles(start, 240, 400.0, 0.0005),
}

rules = parse("profit > 10% or RSI above 75")
context = ExitContext(
    current_price=201.6,
    entry_price=180.0,
    pnl_pct=12.0,
    pnl_abs=216.0,
    days_held=12,
    hours_held=288,
    indicators={"RSI": 68.0},
)
print("Exit check:", evaluate_all(rules, context))

guard = RiskGuard(RiskConfig())
portfolio = PortfolioState(cash_available=10000, portfolio_value=10000, open_positions=1)
proposal = TradeProposal("AAPL", Side.BUY, shares=8, price=180.0, stop_loss_pct=0.05, position_size_pct=0.144)
print("Risk check:", guard.validate_trade(proposal, portfolio))

config = BacktestConfig(
    symbols=list(data),
    start_date=start + timedelta(days=60),
    end_date=start + timedelta(days=239),
    take_profit_pct=0.08,
    trailing_stop=True,
    entry_threshold=0.55,
    exit_conditions=("RSI above 80",),
)
engine = BacktestEngine(config, score_technicals, InMemoryCandleLoader(data), indicator_fn=indicator_snapshot)
result = engine.run()
print(generate_summary(result))

simulator = MonteCarloSimulator()
mc = simulator.simulate(result.trades, MonteCarloConfig(simulations=2000, seed=42))
if mc is not None:
    print(simulator.format_report(mc))
