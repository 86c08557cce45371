"""Decision and simulation core for an equity trading bot."""
