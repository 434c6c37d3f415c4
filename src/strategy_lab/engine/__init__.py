"""Signal evaluation and position simulation."""

from strategy_lab.engine.positions import PositionLog, simulate_positions, trade_return_pct
from strategy_lab.engine.signals import crosses_above, crosses_below, evaluate_rule, evaluate_strategy

__all__ = [
    "PositionLog",
    "crosses_above",
    "crosses_below",
    "evaluate_rule",
    "evaluate_strategy",
    "simulate_positions",
    "trade_return_pct",
]
