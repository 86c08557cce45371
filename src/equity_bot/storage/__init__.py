from equity_bot.storage.trade_history import TradeHistory

__all__ = ["TradeHistory"]
