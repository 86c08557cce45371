from datetime import datetime

from equity_bot.monitoring import AuditLog, MemoryNotifier, Monitor
from equity_bot.risk import (
    ClosedTrade,
    PortfolioState,
    RiskConfig,
    RiskGuard,
    Side,
    TradeProposal,
    count_losing_streak,
    read_history,
    streak_multiplier,
)


class _History:
    def __init__(self, trades):
        self.trades = trades
        self.limits = []

    def recent_closed_trades(self, limit):
        self.limits.append(limit)
        return self.trades[:limit]


class _BrokenHistory:
    def recent_closed_trades(self, limit):
        raise RuntimeError("database is locked")


def _loss():
    return ClosedTrade(pnl=-10.0, exit_price=95.0, entry_price=100.0)


def _win():
    return ClosedTrade(pnl=10.0, exit_price=105.0, entry_price=100.0)


def _portfolio(**overrides):
    values = dict(cash_available=50000.0, portfolio_value=50000.0, open_positions=0)
    values.update(overrides)
    return PortfolioState(**values)


def _buy(shares=10, price=100.0, stop_loss_pct=0.05, sector=None):
    return TradeProposal(
        symbol="AAPL",
        side=Side.BUY,
        shares=shares,
        price=price,
        stop_loss_pct=stop_loss_pct,
        position_size_pct=shares * price / 50000.0,
        sector=sector,
    )


def test_sell_is_always_allowed():
    guard = RiskGuard(RiskConfig())
    sell = TradeProposal("AAPL", Side.SELL, 10_000, 500.0, 0.5, 1.0)
    for open_positions in (0, 5, 50):
        result = guard.validate_trade(sell, _portfolio(open_positions=open_positions, cash_available=0.0))
        assert result.allowed is True


def test_max_positions_rejected_first():
    guard = RiskGuard(RiskConfig(max_positions=5))
    result = guard.validate_trade(_buy(shares=10_000), _portfolio(open_positions=5))
    assert result.allowed is False
    assert result.reason == "Max positions reached: 5/5"


def test_position_size_limit():
    guard = RiskGuard(RiskConfig())
    result = guard.validate_trade(_buy(shares=80, price=100.0), _portfolio())
    assert result.allowed is False
    assert result.reason == "Position size $8000.00 exceeds max $7500.00 (15.0% of portfolio)"


def test_trade_risk_checked_independently_of_size():
    guard = RiskGuard(RiskConfig(max_position_size_pct=0.15, max_risk_per_trade_pct=0.02))
    result = guard.validate_trade(_buy(shares=50, price=150.0, stop_loss_pct=0.20), _portfolio())
    assert result.allowed is False
    assert result.reason.startswith("Trade risk")
    assert result.reason == "Trade risk $1500.00 exceeds max $1000.00 (2.0% of portfolio)"


def test_sector_concentration():
    guard = RiskGuard(RiskConfig(max_sector_concentration=2))
    portfolio = _portfolio(sector_exposure={"Tech": 2})
    result = guard.validate_trade(_buy(sector="Tech"), portfolio)
    assert result.allowed is False
    assert result.reason == "Sector 'Tech' already has 2/2 positions"

    assert guard.validate_trade(_buy(sector="Energy"), portfolio).allowed is True


def test_sector_value_limit_and_disable():
    portfolio = _portfolio(sector_exposure={"Tech": 1}, sector_exposure_value={"Tech": 0.35})
    result = RiskGuard(RiskConfig(max_sector_value_pct=0.35)).validate_trade(_buy(sector="Tech"), portfolio)
    assert result.allowed is False
    assert result.reason == "Sector 'Tech' value 35.0% exceeds max 35.0%"

    disabled = RiskGuard(RiskConfig(max_sector_value_pct=None))
    assert disabled.validate_trade(_buy(sector="Tech"), portfolio).allowed is True


def test_insufficient_cash():
    guard = RiskGuard(RiskConfig())
    result = guard.validate_trade(_buy(shares=10, price=100.0), _portfolio(cash_available=500.0))
    assert result.allowed is False
    assert result.reason == "Insufficient cash: need $1000.00, have $500.00"


def test_valid_buy_allowed():
    result = RiskGuard(RiskConfig()).validate_trade(_buy(), _portfolio())
    assert result.allowed is True
    assert result.reason is None


def test_daily_loss_is_strict_at_the_limit():
    guard = RiskGuard(RiskConfig(daily_loss_limit_pct=0.05))
    assert guard.check_daily_loss(_portfolio(today_pnl_pct=-0.05)) is False
    assert guard.check_daily_loss(_portfolio(today_pnl_pct=-0.05 - 1e-9)) is True
    assert guard.check_daily_loss(_portfolio(today_pnl_pct=0.02)) is False


def test_drawdown_is_strict_at_the_limit():
    guard = RiskGuard(RiskConfig(max_drawdown_alert_pct=0.10))
    assert guard.check_drawdown(_portfolio(portfolio_value=90000.0, peak_value=100000.0)) is False
    assert guard.check_drawdown(_portfolio(portfolio_value=89999.0, peak_value=100000.0)) is True
    assert guard.check_drawdown(_portfolio(portfolio_value=10.0, peak_value=0.0)) is False


def test_breaches_notify_monitor_and_audit(tmp_path):
    notifier = MemoryNotifier()
    audit = AuditLog(tmp_path / "audit.log", run_id="run-1", config_hash="abc")
    guard = RiskGuard(RiskConfig(), audit_log=audit, monitor=Monitor(notifier))

    guard.check_daily_loss(_portfolio(today_pnl_pct=-0.08))
    guard.check_drawdown(_portfolio(portfolio_value=80000.0, peak_value=100000.0))
    guard.validate_trade(_buy(), _portfolio(open_positions=9))

    assert [event for event, _ in notifier.events] == ["DAILY_LOSS", "DRAWDOWN"]
    records = audit.read()
    assert [record["event"] for record in records] == ["daily_loss", "drawdown", "validate_trade"]
    assert records[2]["payload"]["allowed"] is False
    assert all(record["run_id"] == "run-1" and record["config_hash"] == "abc" for record in records)


def test_streak_multiplier_steps():
    assert streak_multiplier(2, 3, 0.5) == 1.0
    for losses in (3, 4, 5):
        assert streak_multiplier(losses, 3, 0.5) == 0.5
    for losses in (6, 7, 8):
        assert streak_multiplier(losses, 3, 0.5) == 0.25
    assert streak_multiplier(9, 3, 0.5) == 0.125


def test_streak_multiplier_disabled_by_config():
    assert streak_multiplier(10, 0, 0.5) == 1.0
    assert streak_multiplier(10, 3, 0.0) == 1.0
    assert streak_multiplier(10, 3, 1.0) == 1.0


def test_count_losing_streak_stops_at_first_win():
    trades = [_loss(), _loss(), _win(), _loss(), _loss(), _loss()]
    assert count_losing_streak(trades) == 2
    assert count_losing_streak([]) == 0


def test_closed_trade_loss_fallbacks():
    assert ClosedTrade(pnl=None, exit_price=90.0, entry_price=100.0).is_loss()
    assert not ClosedTrade(pnl=None, exit_price=110.0, entry_price=100.0).is_loss()
    assert ClosedTrade(pnl=None, exit_price=None, entry_price=100.0).is_loss()
    assert not ClosedTrade(pnl=0.0, exit_price=90.0, entry_price=100.0).is_loss()


def test_guard_streak_multiplier_from_history():
    notifier = MemoryNotifier()
    history = _History([_loss()] * 4 + [_win()])
    guard = RiskGuard(RiskConfig(streak_lookback=50), trade_history=history, monitor=Monitor(notifier))
    assert guard.losing_streak_multiplier() == 0.5
    assert history.limits == [50]
    assert notifier.events[0][0] == "LOSING_STREAK"

    history.trades = [_loss()] * 7
    assert guard.losing_streak_multiplier() == 0.25

    history.trades = [_win()] + [_loss()] * 7
    assert guard.losing_streak_multiplier() == 1.0


def test_guard_streak_multiplier_without_usable_history():
    assert RiskGuard(RiskConfig()).losing_streak_multiplier() == 1.0
    assert RiskGuard(RiskConfig(), trade_history=_BrokenHistory()).losing_streak_multiplier() == 1.0

    read = read_history(_BrokenHistory(), 10)
    assert read.ok is False
    assert "locked" in read.error


def test_guard_streak_disabled_skips_history_read():
    history = _History([_loss()] * 10)
    guard = RiskGuard(RiskConfig(streak_reduction_factor=1.0), trade_history=history)
    assert guard.losing_streak_multiplier() == 1.0
    assert history.limits == []


def test_closed_trade_exit_time_is_optional():
    trade = ClosedTrade(pnl=-5.0, exit_price=None, entry_price=None, exit_time=datetime(2024, 6, 3))
    assert trade.is_loss()
