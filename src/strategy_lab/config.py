"""配置加载模块 - 从环境变量和 .env 文件加载回测配置。"""

from enum import Enum
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class EndOfSeriesPolicy(str, Enum):
    """序列结束时未平仓头寸的处理方式。"""

    MARK_TO_MARKET = "mark_to_market"  # 只按收盘价估值，不计入成交
    LIQUIDATE = "liquidate"  # 按最后收盘价强制平仓


class LogFormat(str, Enum):
    """日志格式枚举。"""

    JSON = "json"
    CONSOLE = "console"


class Settings(BaseSettings):
    """回测系统配置。

    从环境变量和 .env 文件加载配置。
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ==================== 回测参数 ====================
    equity_base: float = Field(
        default=100.0,
        gt=0.0,
        description="权益曲线起始指数",
    )
    same_bar_reentry: bool = Field(
        default=True,
        description="同一根 K 线平仓后是否允许立即重新开仓",
    )
    end_of_series: EndOfSeriesPolicy = Field(
        default=EndOfSeriesPolicy.MARK_TO_MARKET,
        description="序列末尾持仓处理: mark_to_market 或 liquidate",
    )
    batch_max_workers: int = Field(
        default=4,
        ge=1,
        le=64,
        description="多标的批量回测的最大线程数",
    )

    # ==================== 日志配置 ====================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="日志级别",
    )
    log_format: LogFormat = Field(
        default=LogFormat.CONSOLE,
        description="日志输出格式",
    )

    # ==================== 数据存储 ====================
    output_dir: Path = Field(
        default=Path("data/backtests"),
        description="回测结果输出目录",
    )

    @field_validator("output_dir", mode="before")
    @classmethod
    def parse_output_dir(cls, v: str | Path) -> Path:
        """将字符串转换为 Path 对象。"""
        return Path(v) if isinstance(v, str) else v

    def ensure_directories(self) -> None:
        """确保必要的目录存在。"""
        self.output_dir.mkdir(parents=True, exist_ok=True)

    @property
    def liquidates_at_end(self) -> bool:
        """序列末尾是否强制平仓。"""
        return self.end_of_series == EndOfSeriesPolicy.LIQUIDATE


# 全局配置实例（延迟初始化）
_settings: Settings | None = None


def get_settings() -> Settings:
    """获取全局配置实例。"""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reload_settings() -> Settings:
    """重新加载配置。"""
    global _settings
    _settings = Settings()
    return _settings
