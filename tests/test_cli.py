"""Tests for CLI commands using click CliRunner. Uses temp CSV bars and config files."""

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from cli.main import cli
from data.bar_file import write_bars

from conftest import make_bars


def _journal(path: Path) -> list[dict]:
    return [json.loads(line) for line in path.read_text().splitlines()]


@pytest.fixture
def tmp_config(tmp_path: Path, dip_and_recover_closes: list[float]) -> Path:
    """Write a temp config.yaml pointing at a CSV of dip-and-recover bars."""
    bars_path = tmp_path / "bars.csv"
    write_bars(bars_path, make_bars(dip_and_recover_closes))
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        f"""
symbol: SPY
data:
  bars_path: "{bars_path}"
backtest:
  initial_capital: 10000
strategy:
  name: mean_reversion
  params:
    window: 5
    threshold: 0.05
journal:
  path: "{tmp_path / 'journal.jsonl'}"
  echo_stdout: false
alerting:
  structured_logs: false
"""
    )
    return config_path


def test_cli_backtest(tmp_config: Path, tmp_path: Path) -> None:
    out_path = tmp_path / "result.json"
    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(tmp_config), "backtest", "--json-out", str(out_path)])
    assert result.exit_code == 0, result.output
    assert "Running backtest: SPY mean_reversion, 11 bars" in result.output
    assert "=== Backtest: SPY mean_reversion ===" in result.output
    assert "Trade #1: BUY" in result.output
    assert "Return       : +15.00%" in result.output

    data = json.loads(out_path.read_text())
    assert data["total_return"] == pytest.approx(0.15)
    assert [t["action"] for t in data["trades"]] == ["BUY", "SELL"]

    events = [r["event"] for r in _journal(tmp_path / "journal.jsonl")]
    assert events == ["run_start", "trade", "trade", "summary"]


def test_cli_backtest_overrides(tmp_config: Path, tmp_path: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(
        cli,
        [
            "--config", str(tmp_config), "backtest",
            "--symbol", "QQQ", "--strategy", "momentum",
            "--param", "rsi_window=3", "--param", "rsiOverbought=80",
            "--capital", "5000",
        ],
    )
    assert result.exit_code == 0, result.output
    assert "Running backtest: QQQ momentum, 11 bars" in result.output
    start = _journal(tmp_path / "journal.jsonl")[0]
    assert start["params"] == {"rsi_window": 3, "rsiOverbought": 80}
    assert start["initial_capital"] == 5000.0


def test_cli_backtest_settings_file_rejection(tmp_config: Path, tmp_path: Path) -> None:
    settings_path = tmp_path / "session.yaml"
    settings_path.write_text("trading_days: [MON, TUE, WED, THU, FRI]\n")
    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(tmp_config), "backtest", "--settings", str(settings_path)])
    assert result.exit_code == 0, result.output
    records = _journal(tmp_path / "journal.jsonl")
    rejections = [r for r in records if r["event"] == "rejection"]
    assert len(rejections) == 1
    assert rejections[0]["reason"] == "Outside trading window"
    assert records[-1]["trades"] == 0


def test_cli_backtest_unknown_strategy(tmp_config: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(tmp_config), "backtest", "--strategy", "sentiment"])
    assert result.exit_code == 1
    assert "Unknown strategy" in result.output


def test_cli_backtest_missing_bars(tmp_config: Path, tmp_path: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(
        cli, ["--config", str(tmp_config), "backtest", "--bars", str(tmp_path / "none.csv")]
    )
    assert result.exit_code == 1
    assert "not found" in result.output


def test_cli_backtest_bad_param(tmp_config: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(tmp_config), "backtest", "--param", "window"])
    assert result.exit_code == 2


def test_cli_backtest_date_range(tmp_config: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(
        cli, ["--config", str(tmp_config), "backtest", "--start", "2024-01-03", "--end", "2024-01-09"]
    )
    assert result.exit_code == 0, result.output
    assert "Running backtest: SPY mean_reversion, 7 bars" in result.output
    assert "Period       : 2024-01-03T14:30:00+00:00 -> 2024-01-09T14:30:00+00:00" in result.output


def test_cli_backtest_start_only(tmp_config: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(tmp_config), "backtest", "--start", "2024-01-03"])
    assert result.exit_code == 0, result.output
    assert "9 bars" in result.output


def test_cli_backtest_bad_date(tmp_config: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(tmp_config), "backtest", "--start", "last week"])
    assert result.exit_code == 2
    assert "not an ISO date" in result.output


def test_cli_backtest_start_after_end(tmp_config: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(
        cli, ["--config", str(tmp_config), "backtest", "--start", "2024-01-09", "--end", "2024-01-03"]
    )
    assert result.exit_code == 1
    assert "after end" in result.output


def test_cli_strategies() -> None:
    runner = CliRunner()
    result = runner.invoke(cli, ["strategies"])
    assert result.exit_code == 0
    assert "=== Strategies ===" in result.output
    assert "mean_reversion" in result.output
    assert "bollinger_bands" in result.output


def test_cli_check_settings_valid(tmp_path: Path) -> None:
    path = tmp_path / "session.json"
    path.write_text(json.dumps({"stop_loss_percentage": 5, "extended_hours": False}))
    runner = CliRunner()
    result = runner.invoke(cli, ["check-settings", str(path)])
    assert result.exit_code == 0
    assert "Stop loss    : 5%" in result.output
    assert "00:00-23:59 UTC" in result.output
    assert "Settings: VALID" in result.output


def test_cli_check_settings_invalid(tmp_path: Path) -> None:
    path = tmp_path / "session.json"
    path.write_text(json.dumps({"slippage_model": "random"}))
    runner = CliRunner()
    result = runner.invoke(cli, ["check-settings", str(path)])
    assert result.exit_code == 1
    assert "[FAIL]" in result.output
