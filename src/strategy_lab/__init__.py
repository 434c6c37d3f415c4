"""strategy-lab: rule-based strategy backtesting over daily OHLCV bars."""

__version__ = "0.1.0"
