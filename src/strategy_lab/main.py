"""CLI 入口模块 - strategy-lab 命令行接口。"""

import sys
from pathlib import Path

import click

from strategy_lab import __version__
from strategy_lab.backtest.data import load_bars_csv, load_bars_json
from strategy_lab.backtest.metrics import result_as_payload
from strategy_lab.backtest.runner import dump_payload, run_backtest, run_batch, write_backtest_artifacts
from strategy_lab.backtest.types import BacktestConfig
from strategy_lab.config import EndOfSeriesPolicy, get_settings
from strategy_lab.dsl.errors import DSLError
from strategy_lab.dsl.normalizer import parse_strategy_text, strategy_as_dict
from strategy_lab.dsl.schemas import Strategy
from strategy_lab.types import Bar
from strategy_lab.utils.logging import get_logger, log_validation_failure, setup_logging

_EXIT_DSL_ERROR = 2
_EXIT_DATA_ERROR = 1


@click.group(invoke_without_command=True)
@click.option("--version", "-v", is_flag=True, help="显示版本号")
@click.pass_context
def cli(ctx: click.Context, version: bool) -> None:
    """strategy-lab - 基于 JSON DSL 的规则策略回测工具。

    读取策略定义与日线 OHLCV 数据，输出成交记录、权益曲线与统计。
    """
    if version:
        click.echo(f"strategy-lab version {__version__}")
        return

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@cli.command()
@click.option(
    "--strategy",
    "strategy_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    required=True,
    help="策略 DSL 文件（JSON，可包含 ``` 代码块）",
)
@click.option(
    "--bars",
    "bars_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    required=True,
    help="日线数据文件（CSV 或 JSON）",
)
@click.option("--symbol", "-s", default=None, help="标的代码（默认取数据文件名）")
@click.option("--output", "output_dir", type=click.Path(path_type=Path), default=None, help="结果输出目录")
@click.option("--save", is_flag=True, default=False, help="写入配置的输出目录 <output_dir>/<symbol>")
@click.option(
    "--same-bar-reentry/--no-same-bar-reentry",
    default=None,
    help="平仓当根 K 线是否允许重新开仓（默认读取配置）",
)
@click.option("--liquidate-at-end", is_flag=True, default=False, help="序列末尾按收盘价强制平仓")
@click.option("--json", "as_json", is_flag=True, default=False, help="以 JSON 输出完整结果")
def run(
    strategy_path: Path,
    bars_path: Path,
    symbol: str | None,
    output_dir: Path | None,
    save: bool,
    same_bar_reentry: bool | None,
    liquidate_at_end: bool,
    as_json: bool,
) -> None:
    """对单个标的执行一次回测。"""
    setup_logging()
    logger = get_logger("strategy_lab.main")
    config = _build_config(same_bar_reentry, liquidate_at_end)
    symbol = (symbol or bars_path.stem).upper()

    strategy = _load_strategy_or_exit(strategy_path)
    bars = _load_bars_or_exit(bars_path)

    result = run_backtest(strategy, bars, config)
    if output_dir is None and save:
        settings = get_settings()
        settings.ensure_directories()
        output_dir = settings.output_dir / symbol
    if output_dir is not None:
        write_backtest_artifacts(output_dir, result)
        logger.info("artifacts_written", symbol=symbol, output_dir=str(output_dir))

    if as_json:
        click.echo(dump_payload(result_as_payload(result)))
        return

    stats = result.stats
    click.echo(f"Symbol: {symbol}")
    click.echo(f"Strategy: {result.name}")
    click.echo(f"Bars: {len(bars)}")
    click.echo(f"Total return: {stats.total_return_pct:.2f}%")
    click.echo(f"Trades: {stats.trades}")
    click.echo(f"Win rate: {stats.win_rate_pct:.2f}%")
    click.echo(f"Avg trade: {stats.avg_trade_pct:.2f}%")
    if result.open_position is not None:
        position = result.open_position
        click.echo(
            f"Open position: since {position.entry_date} @ {position.entry_price:.4f} "
            f"({position.unrealized_pct:+.2f}%)"
        )
    for warning in result.warnings:
        click.echo(f"[WARN] {warning}")


@cli.command()
@click.option(
    "--strategy",
    "strategy_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    required=True,
    help="策略 DSL 文件",
)
@click.argument(
    "bars_paths",
    nargs=-1,
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option("--workers", "-w", type=int, default=None, help="并发线程数（默认读取配置）")
@click.option("--liquidate-at-end", is_flag=True, default=False, help="序列末尾按收盘价强制平仓")
@click.option("--save", is_flag=True, default=False, help="逐个标的写入配置的输出目录 <output_dir>/<symbol>")
def batch(
    strategy_path: Path,
    bars_paths: tuple[Path, ...],
    workers: int | None,
    liquidate_at_end: bool,
    save: bool,
) -> None:
    """对多个标的并行执行同一策略，标的名取文件名。"""
    setup_logging()
    settings = get_settings()
    config = _build_config(None, liquidate_at_end)

    strategy = _load_strategy_or_exit(strategy_path)
    bars_by_symbol = {path.stem.upper(): _load_bars_or_exit(path) for path in bars_paths}

    results = run_batch(
        strategy,
        bars_by_symbol,
        config,
        max_workers=workers or settings.batch_max_workers,
    )
    if save:
        logger = get_logger("strategy_lab.main")
        settings.ensure_directories()
        for symbol, result in results.items():
            write_backtest_artifacts(settings.output_dir / symbol, result)
        logger.info("artifacts_written", symbols=len(results), output_dir=str(settings.output_dir))

    payload = {symbol: result_as_payload(result) for symbol, result in results.items()}
    click.echo(dump_payload(payload))


@cli.command()
@click.option(
    "--strategy",
    "strategy_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    required=True,
    help="策略 DSL 文件",
)
def validate(strategy_path: Path) -> None:
    """校验策略 DSL 并输出补全默认值后的结果。"""
    setup_logging()
    strategy = _load_strategy_or_exit(strategy_path)
    click.echo(dump_payload(strategy_as_dict(strategy)))


@cli.command()
def status() -> None:
    """显示当前回测配置摘要。"""
    settings = get_settings()

    click.echo("=" * 50)
    click.echo("strategy-lab - Status")
    click.echo("=" * 50)
    click.echo()

    click.echo("[Backtest]")
    click.echo(f"   Equity base: {settings.equity_base}")
    click.echo(f"   Same-bar re-entry: {'Yes' if settings.same_bar_reentry else 'No'}")
    click.echo(f"   End of series: {settings.end_of_series.value}")
    click.echo(f"   Batch workers: {settings.batch_max_workers}")
    click.echo()

    click.echo("[Logging]")
    click.echo(f"   Log level: {settings.log_level}")
    click.echo(f"   Log format: {settings.log_format.value}")
    click.echo(f"   Output dir: {settings.output_dir}")
    click.echo()
    click.echo("=" * 50)


@cli.command()
def check() -> None:
    """检查运行依赖和配置文件。"""
    setup_logging()
    logger = get_logger("strategy_lab.main")

    click.echo("Checking system dependencies...")
    click.echo()

    missing: list[str] = []
    packages = [
        ("pydantic", "Strategy DSL validation"),
        ("pydantic_settings", "Settings loading"),
        ("pandas", "Bar loading and CSV artifacts"),
        ("structlog", "Structured logging"),
        ("click", "CLI framework"),
    ]
    for pkg_name, desc in packages:
        try:
            __import__(pkg_name)
            click.echo(f"  [OK] {pkg_name} - {desc}")
        except ImportError:
            click.echo(f"  [MISSING] {pkg_name} - {desc}")
            missing.append(pkg_name)

    click.echo()
    if Path(".env").exists():
        click.echo("  [OK] .env configuration file exists")
    else:
        click.echo("  [WARN] .env file not found (using defaults)")
    click.echo()

    if missing:
        click.echo("[ERROR] Some dependencies missing. Run: pip install -e .")
    else:
        click.echo("[OK] All dependency checks passed")

    logger.info("dependency_check_completed", all_ok=not missing, missing=missing)


def _build_config(same_bar_reentry: bool | None, liquidate_at_end: bool) -> BacktestConfig:
    settings = get_settings()
    base = BacktestConfig.from_settings(settings)
    liquidate = liquidate_at_end or settings.liquidates_at_end
    return BacktestConfig(
        equity_base=base.equity_base,
        same_bar_reentry=base.same_bar_reentry if same_bar_reentry is None else same_bar_reentry,
        end_of_series=EndOfSeriesPolicy.LIQUIDATE if liquidate else EndOfSeriesPolicy.MARK_TO_MARKET,
    )


def _load_strategy_or_exit(path: Path) -> Strategy:
    logger = get_logger("strategy_lab.main")
    try:
        return parse_strategy_text(path.read_text(encoding="utf-8"))
    except DSLError as exc:
        log_validation_failure(logger, error_type=type(exc).__name__, message=str(exc), path=str(path))
        click.echo(f"[ERROR] {type(exc).__name__}: {exc}", err=True)
        sys.exit(_EXIT_DSL_ERROR)


def _load_bars_or_exit(path: Path) -> list[Bar]:
    logger = get_logger("strategy_lab.main")
    try:
        if path.suffix.lower() == ".json":
            return load_bars_json(path)
        return load_bars_csv(path)
    except ValueError as exc:
        logger.error("bars_load_failed", path=str(path), error=str(exc))
        click.echo(f"[ERROR] {path}: {exc}", err=True)
        sys.exit(_EXIT_DATA_ERROR)


# 支持 python -m strategy_lab.main 调用
if __name__ == "__main__":
    cli()
