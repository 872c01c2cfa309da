"""
Configuration loaders.

App config:        reads config.yaml into a frozen dataclass tree.
Session settings:  merges overrides onto session_settings.default.json,
                   validates against JSON Schema.
"""

from config.loader import (
    AlertingConfig,
    AppConfig,
    BacktestConfig,
    DataConfig,
    JournalConfig,
    SessionConfig,
    StrategyConfig,
    load_config,
    parse_config,
)
from config.session_settings import (
    SessionSettingsError,
    TradingSessionSettings,
    load_session_settings,
    resolve_settings,
)

__all__ = [
    # App config (YAML)
    "AlertingConfig",
    "AppConfig",
    "BacktestConfig",
    "DataConfig",
    "JournalConfig",
    "SessionConfig",
    "StrategyConfig",
    "load_config",
    "parse_config",
    # Session settings (JSON + schema)
    "SessionSettingsError",
    "TradingSessionSettings",
    "load_session_settings",
    "resolve_settings",
]
