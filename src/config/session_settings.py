"""
Trading session settings: overrides -> validated, frozen settings.

Default values: config/session_settings.default.json
Schema:         config/session_settings.schema.json

``resolve_settings`` is the single constructor every entry point uses: it
deep-merges caller overrides on top of the defaults, validates the result
against the JSON Schema, applies cross-field checks and returns an
immutable ``TradingSessionSettings``.

Usage:
    from config.session_settings import resolve_settings
    settings = resolve_settings()                                # documented default
    settings = resolve_settings({"stop_loss_percentage": 5})     # overrides
    settings = load_session_settings("session.yaml")             # from a file
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Mapping

import jsonschema
import yaml

logger = logging.getLogger("backtester.config")

_CONFIG_DIR = Path(__file__).resolve().parent
DEFAULT_SETTINGS_PATH = _CONFIG_DIR / "session_settings.default.json"
SETTINGS_SCHEMA_PATH = _CONFIG_DIR / "session_settings.schema.json"

# Keys carried by stored session records that do not affect a backtest.
_INERT_KEYS = frozenset(
    {
        "id",
        "session_id",
        "created_at",
        "updated_at",
        "rebalance_frequency",
        "enable_bracket_orders",
        "enable_oco_orders",
    }
)

WEEKDAYS = ("MON", "TUE", "WED", "THU", "FRI", "SAT", "SUN")


class SessionSettingsError(ValueError):
    """Raised when session settings fail to load or validate."""


@dataclass(frozen=True)
class TradingSessionSettings:
    """Immutable per-run settings for risk, sizing, execution and trading window."""

    # Risk management (percentages are 0-100)
    stop_loss_percentage: float | None
    take_profit_percentage: float | None
    trailing_stop_percentage: float | None
    max_daily_loss_percentage: float | None
    max_daily_loss_absolute: float | None
    max_position_size_percentage: float
    max_open_positions: int

    # Position sizing
    position_sizing_method: str     # "fixed" | "percentage" | "equal_weight" | "kelly"
    position_size_value: float

    # Order execution
    order_type_default: str         # "market" | "limit" | "stop" | "stop_limit" | "trailing_stop"
    limit_price_offset_percentage: float | None
    time_in_force: str              # "day" | "gtc" | "ioc" | "fok" | "opg" | "cls"
    allow_partial_fills: bool
    commission_rate: float
    slippage_model: str             # "none" | "fixed" | "proportional"
    slippage_value: float

    # Trading window (UTC)
    trading_days: tuple[str, ...]
    trading_hours_start: str
    trading_hours_end: str
    extended_hours: bool

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["trading_days"] = list(self.trading_days)
        return data


def _deep_merge(base: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge *overrides* into a copy of *base* (override keys win)."""
    merged = dict(base)
    for key, val in overrides.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(val, dict):
            merged[key] = _deep_merge(merged[key], val)
        else:
            merged[key] = val
    return merged


def _read_json(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise SessionSettingsError(f"Settings file not found: {path}")
    try:
        with open(path) as f:
            return json.load(f)
    except json.JSONDecodeError as exc:
        raise SessionSettingsError(f"{path.name} is not valid JSON: {exc}") from exc


def _validate_schema(data: dict[str, Any], schema_path: Path) -> None:
    schema = _read_json(schema_path)
    try:
        jsonschema.validate(instance=data, schema=schema)
    except jsonschema.ValidationError as exc:
        where = ".".join(str(p) for p in exc.absolute_path) or "settings"
        raise SessionSettingsError(f"Session settings validation failed at {where}: {exc.message}") from exc


def _clock_minutes(value: str) -> int:
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def _normalize_overrides(overrides: Mapping[str, Any]) -> dict[str, Any]:
    data = {k: v for k, v in overrides.items() if k not in _INERT_KEYS}
    # Stored sessions may carry a trailing percentage with the feature switched off.
    enabled = data.pop("enable_trailing_stop", None)
    if enabled is False:
        data["trailing_stop_percentage"] = None
    if isinstance(data.get("trading_days"), tuple):
        data["trading_days"] = list(data["trading_days"])
    return data


def _build_settings(data: dict[str, Any]) -> TradingSessionSettings:
    """Convert a validated dict into the frozen dataclass."""
    return TradingSessionSettings(
        stop_loss_percentage=data.get("stop_loss_percentage"),
        take_profit_percentage=data.get("take_profit_percentage"),
        trailing_stop_percentage=data.get("trailing_stop_percentage"),
        max_daily_loss_percentage=data.get("max_daily_loss_percentage"),
        max_daily_loss_absolute=data.get("max_daily_loss_absolute"),
        max_position_size_percentage=float(data["max_position_size_percentage"]),
        max_open_positions=int(data["max_open_positions"]),
        position_sizing_method=data["position_sizing_method"],
        position_size_value=float(data["position_size_value"]),
        order_type_default=data["order_type_default"],
        limit_price_offset_percentage=data.get("limit_price_offset_percentage"),
        time_in_force=data["time_in_force"],
        allow_partial_fills=bool(data["allow_partial_fills"]),
        commission_rate=float(data["commission_rate"]),
        slippage_model=data["slippage_model"],
        slippage_value=float(data["slippage_value"]),
        trading_days=tuple(d for d in WEEKDAYS if d in data["trading_days"]),
        trading_hours_start=data["trading_hours_start"],
        trading_hours_end=data["trading_hours_end"],
        extended_hours=bool(data["extended_hours"]),
    )


def resolve_settings(
    overrides: Mapping[str, Any] | TradingSessionSettings | None = None,
    *,
    defaults_path: str | Path | None = None,
    schema_path: str | Path | None = None,
) -> TradingSessionSettings:
    """Merge *overrides* onto the defaults, validate, and freeze.

    Parameters
    ----------
    overrides:
        Partial settings mapping. Already-resolved settings are returned
        unchanged. ``None`` yields the documented default: no stop-loss or
        take-profit, fixed 100-share sizing, no slippage or commission, and
        an unrestricted trading window.
    defaults_path, schema_path:
        Alternative default and schema files (tests, per-desk presets).

    Raises
    ------
    SessionSettingsError
        On schema violations or inconsistent trading hours.
    """
    if isinstance(overrides, TradingSessionSettings):
        return overrides
    if overrides is not None and not isinstance(overrides, Mapping):
        raise SessionSettingsError(
            f"Session settings must be a mapping, got {type(overrides).__name__}"
        )

    base = _read_json(Path(defaults_path) if defaults_path else DEFAULT_SETTINGS_PATH)
    data = _deep_merge(base, _normalize_overrides(overrides or {}))
    _validate_schema(data, Path(schema_path) if schema_path else SETTINGS_SCHEMA_PATH)

    if _clock_minutes(data["trading_hours_end"]) <= _clock_minutes(data["trading_hours_start"]):
        raise SessionSettingsError(
            f"trading_hours_end ({data['trading_hours_end']}) must be after "
            f"trading_hours_start ({data['trading_hours_start']})"
        )
    # Proportional slippage scales up to twice the base rate.
    if data["slippage_model"] == "proportional" and data["slippage_value"] * 2 >= 100:
        raise SessionSettingsError(
            f"proportional slippage_value ({data['slippage_value']}) must be below 50"
        )
    if not data["trading_days"]:
        logger.warning("Session settings allow no trading days; every entry will be refused")

    return _build_settings(data)


def load_session_settings(path: str | Path) -> TradingSessionSettings:
    """Load overrides from a JSON or YAML file and resolve them."""
    settings_path = Path(path)
    if not settings_path.exists():
        raise SessionSettingsError(f"Settings file not found: {settings_path}")

    if settings_path.suffix.lower() in (".yaml", ".yml"):
        try:
            with open(settings_path) as f:
                raw = yaml.safe_load(f)
        except yaml.YAMLError as exc:
            raise SessionSettingsError(f"{settings_path.name} is not valid YAML: {exc}") from exc
    else:
        raw = _read_json(settings_path)

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise SessionSettingsError(
            f"Settings file must hold a mapping, got {type(raw).__name__}"
        )
    logger.info("Loaded session settings: %s", settings_path.name)
    return resolve_settings(raw)
