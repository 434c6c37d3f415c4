"""Backtest package exports."""

from strategy_lab.backtest.data import (
    bars_from_records,
    closes,
    load_bars_csv,
    load_bars_json,
    normalize_bars,
)
from strategy_lab.backtest.metrics import (
    build_equity_curve,
    compute_drawdown,
    compute_stats,
    result_as_payload,
)
from strategy_lab.backtest.runner import (
    dump_payload,
    run_backtest,
    run_batch,
    write_backtest_artifacts,
)
from strategy_lab.backtest.types import BacktestConfig

__all__ = [
    "BacktestConfig",
    "bars_from_records",
    "build_equity_curve",
    "closes",
    "compute_drawdown",
    "compute_stats",
    "dump_payload",
    "load_bars_csv",
    "load_bars_json",
    "normalize_bars",
    "result_as_payload",
    "run_backtest",
    "run_batch",
    "write_backtest_artifacts",
]
