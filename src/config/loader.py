"""
Config loader: YAML file -> frozen dataclass tree.

The file names the default symbol, bar file, strategy and session
overrides used by ``backtester backtest``. Command-line options win over
every value here.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml


@dataclass(frozen=True)
class DataConfig:
    bars_path: str = "data/bars.csv"


@dataclass(frozen=True)
class BacktestConfig:
    initial_capital: float = 10_000.0


@dataclass(frozen=True)
class StrategyConfig:
    name: str = "mean_reversion"
    params: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class SessionConfig:
    """Inline overrides, or a JSON/YAML file of overrides (the file wins)."""
    settings_path: str = ""
    overrides: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class JournalConfig:
    path: str = "data/journal.jsonl"
    echo_stdout: bool = False


@dataclass(frozen=True)
class AlertingConfig:
    structured_logs: bool = True


@dataclass(frozen=True)
class AppConfig:
    symbol: str
    data: DataConfig
    backtest: BacktestConfig
    strategy: StrategyConfig
    session: SessionConfig
    journal: JournalConfig
    alerting: AlertingConfig = AlertingConfig()


def _section(raw: dict, key: str) -> dict:
    value = raw.get(key) or {}
    if not isinstance(value, dict):
        raise ValueError(f"Config section '{key}' must be a mapping, got {type(value).__name__}")
    return value


def load_config(path: str | Path = "config.yaml") -> AppConfig:
    """Load configuration from a YAML file."""
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f)

    if not isinstance(raw, dict):
        raise ValueError(f"Config file must be a YAML mapping, got {type(raw).__name__}")

    return parse_config(raw)


def parse_config(raw: dict) -> AppConfig:
    """Build the config tree from a parsed mapping; absent keys take defaults."""
    data_raw = _section(raw, "data")
    data_cfg = DataConfig(bars_path=str(data_raw.get("bars_path", "data/bars.csv")))

    bt_raw = _section(raw, "backtest")
    bt_cfg = BacktestConfig(
        initial_capital=float(bt_raw.get("initial_capital", 10_000)),
    )

    st_raw = _section(raw, "strategy")
    st_cfg = StrategyConfig(
        name=str(st_raw.get("name", "mean_reversion")),
        params=dict(_section(st_raw, "params")),
    )

    se_raw = _section(raw, "session")
    se_cfg = SessionConfig(
        settings_path=str(se_raw.get("settings_path") or ""),
        overrides=dict(_section(se_raw, "overrides")),
    )

    j_raw = _section(raw, "journal")
    j_cfg = JournalConfig(
        path=j_raw.get("path", "data/journal.jsonl"),
        echo_stdout=bool(j_raw.get("echo_stdout", False)),
    )

    a_raw = _section(raw, "alerting")
    a_cfg = AlertingConfig(
        structured_logs=bool(a_raw.get("structured_logs", True)),
    )

    return AppConfig(
        symbol=raw.get("symbol", "SPY"),
        data=data_cfg,
        backtest=bt_cfg,
        strategy=st_cfg,
        session=se_cfg,
        journal=j_cfg,
        alerting=a_cfg,
    )
