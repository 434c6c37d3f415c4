"""Strategy DSL schemas: one pydantic model per supported rule kind."""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator, model_validator

CrossDirection = Literal["fast_above", "fast_below"]
OscillatorSide = Literal["long", "short"]
TrendDirection = Literal["bull", "bear"]
CombineMode = Literal["any", "all"]

DEFAULT_STRATEGY_NAME = "Custom Strategy"

# same alias on enter and exit: "long" always means the upward cross
_CROSS_ALIASES = {"above": "fast_above", "long": "fast_above", "below": "fast_below", "short": "fast_below"}
_TREND_ALIASES = {"long": "bull", "short": "bear"}

_RULE_CONFIG = ConfigDict(extra="forbid", frozen=True, allow_inf_nan=False)


class _RuleBase(BaseModel):
    model_config = _RULE_CONFIG

    # "type" is the union discriminator and must stay free of before-validators
    @field_validator("fast", "slow", "signal", "period", "low", "high", mode="before", check_fields=False)
    @classmethod
    def _reject_bool(cls, value: Any, info: ValidationInfo) -> Any:
        # pydantic would otherwise read True/False as 1/0 for numeric params
        if isinstance(value, bool):
            raise ValueError(f"{info.field_name} must be numeric, got bool")
        return value


class MovingAverageCrossRule(_RuleBase):
    """Fast/slow moving-average crossover (SMA or EMA)."""

    type: Literal["sma_cross", "ema_cross"]
    fast: int = Field(default=10, gt=0)
    slow: int = Field(default=30, gt=0)
    enter: CrossDirection = "fast_above"
    exit: CrossDirection = "fast_below"

    @field_validator("enter", "exit", mode="before")
    @classmethod
    def _map_direction(cls, value: Any) -> Any:
        if not isinstance(value, str):
            return value
        token = value.strip().lower()
        return _CROSS_ALIASES.get(token, token)

    @property
    def average(self) -> Literal["sma", "ema"]:
        return "sma" if self.type == "sma_cross" else "ema"

    @property
    def required_bars(self) -> int:
        return max(self.fast, self.slow) + 1


class OscillatorThresholdRule(_RuleBase):
    """RSI crossing its oversold/overbought thresholds."""

    type: Literal["rsi_threshold"]
    period: int = Field(default=14, gt=0)
    low: float = Field(default=30.0, ge=0.0, le=100.0)
    high: float = Field(default=70.0, ge=0.0, le=100.0)
    enter: OscillatorSide = "long"
    exit: OscillatorSide = "long"

    @field_validator("enter", "exit", mode="before")
    @classmethod
    def _normalize_side(cls, value: Any) -> Any:
        return value.strip().lower() if isinstance(value, str) else value

    @model_validator(mode="after")
    def _check_band(self) -> OscillatorThresholdRule:
        if self.low >= self.high:
            raise ValueError(f"low ({self.low}) must be below high ({self.high})")
        return self

    @property
    def required_bars(self) -> int:
        return self.period + 2


class TrendSignalCrossRule(_RuleBase):
    """MACD line crossing its signal line."""

    type: Literal["macd_cross"]
    fast: int = Field(default=12, gt=0)
    slow: int = Field(default=26, gt=0)
    signal: int = Field(default=9, gt=0)
    enter: TrendDirection = "bull"
    exit: TrendDirection = "bear"

    @field_validator("enter", "exit", mode="before")
    @classmethod
    def _map_direction(cls, value: Any) -> Any:
        if not isinstance(value, str):
            return value
        token = value.strip().lower()
        return _TREND_ALIASES.get(token, token)

    @property
    def required_bars(self) -> int:
        return max(self.fast, self.slow, self.signal) + 1


Rule = Annotated[
    Union[MovingAverageCrossRule, OscillatorThresholdRule, TrendSignalCrossRule],
    Field(discriminator="type"),
]

RULE_MODELS: dict[str, type[MovingAverageCrossRule | OscillatorThresholdRule | TrendSignalCrossRule]] = {
    "sma_cross": MovingAverageCrossRule,
    "ema_cross": MovingAverageCrossRule,
    "rsi_threshold": OscillatorThresholdRule,
    "macd_cross": TrendSignalCrossRule,
}


class Strategy(BaseModel):
    """A named, non-empty list of rules and how their signals combine."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str = DEFAULT_STRATEGY_NAME
    rules: tuple[Rule, ...] = Field(min_length=1)
    combine: CombineMode = "any"

    @property
    def required_bars(self) -> int:
        return max(rule.required_bars for rule in self.rules)
