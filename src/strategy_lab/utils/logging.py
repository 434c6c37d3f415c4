"""结构化日志配置模块。

使用 structlog 提供结构化日志支持，支持 JSON 和控制台两种输出格式。
"""

import logging
import sys
from typing import Any

import structlog
from structlog.types import Processor

from strategy_lab.config import LogFormat, get_settings


def setup_logging() -> None:
    """配置结构化日志系统。

    根据配置设置日志级别和输出格式。日志写到 stderr，
    以免污染 CLI 在 stdout 上输出的 JSON 结果。
    """
    settings = get_settings()

    log_level = getattr(logging, settings.log_level)
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=log_level,
    )

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if settings.log_format == LogFormat.JSON:
        processors: list[Processor] = [
            *shared_processors,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = [
            *shared_processors,
            structlog.dev.ConsoleRenderer(colors=True),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """获取结构化日志记录器。

    Args:
        name: 日志记录器名称。如果为 None，则使用调用模块名。

    Returns:
        结构化日志记录器实例。
    """
    return structlog.get_logger(name)


def log_backtest_run(
    logger: structlog.stdlib.BoundLogger,
    *,
    strategy: str,
    bars: int,
    trades: int,
    total_return_pct: float,
    **kwargs: Any,
) -> None:
    """记录一次回测运行。"""
    logger.info(
        "backtest_completed",
        strategy=strategy,
        bars=bars,
        trades=trades,
        total_return_pct=round(total_return_pct, 4),
        **kwargs,
    )


def log_validation_failure(
    logger: structlog.stdlib.BoundLogger,
    *,
    error_type: str,
    message: str,
    **kwargs: Any,
) -> None:
    """记录策略 DSL 校验失败。"""
    logger.warning(
        "strategy_rejected",
        error_type=error_type,
        message=message,
        **kwargs,
    )
