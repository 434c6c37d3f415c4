"""Strategy DSL exports."""

from strategy_lab.dsl.errors import (
    DSLError,
    InvalidParameter,
    UnsupportedRuleKind,
    ValidationError,
)
from strategy_lab.dsl.normalizer import normalize_strategy, parse_strategy_text, strategy_as_dict
from strategy_lab.dsl.schemas import (
    MovingAverageCrossRule,
    OscillatorThresholdRule,
    Strategy,
    TrendSignalCrossRule,
)

__all__ = [
    "DSLError",
    "InvalidParameter",
    "MovingAverageCrossRule",
    "OscillatorThresholdRule",
    "Strategy",
    "TrendSignalCrossRule",
    "UnsupportedRuleKind",
    "ValidationError",
    "normalize_strategy",
    "parse_strategy_text",
    "strategy_as_dict",
]
