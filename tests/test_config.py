from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from strategy_lab.config import EndOfSeriesPolicy, LogFormat, Settings


def test_settings_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("EQUITY_BASE", "SAME_BAR_REENTRY", "END_OF_SERIES", "LOG_FORMAT", "OUTPUT_DIR"):
        monkeypatch.delenv(name, raising=False)
    settings = Settings(_env_file=None)
    assert settings.equity_base == 100.0
    assert settings.same_bar_reentry is True
    assert settings.end_of_series == EndOfSeriesPolicy.MARK_TO_MARKET
    assert settings.log_format == LogFormat.CONSOLE
    assert not settings.liquidates_at_end


def test_settings_from_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("SAME_BAR_REENTRY", "false")
    monkeypatch.setenv("END_OF_SERIES", "liquidate")
    monkeypatch.setenv("OUTPUT_DIR", str(tmp_path / "out"))
    settings = Settings(_env_file=None)

    assert settings.same_bar_reentry is False
    assert settings.liquidates_at_end
    assert settings.output_dir == tmp_path / "out"
    settings.ensure_directories()
    assert (tmp_path / "out").is_dir()


def test_settings_reject_invalid_values() -> None:
    with pytest.raises(ValidationError):
        Settings(_env_file=None, equity_base=0)
    with pytest.raises(ValidationError):
        Settings(_env_file=None, end_of_series="close_out")
    with pytest.raises(ValidationError):
        Settings(_env_file=None, batch_max_workers=0)
