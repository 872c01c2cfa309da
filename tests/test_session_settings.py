"""Tests for session settings: defaults, overrides, schema validation, file loading."""

import json
from pathlib import Path

import pytest

from config.session_settings import (
    SessionSettingsError,
    TradingSessionSettings,
    load_session_settings,
    resolve_settings,
)


class TestDefaults:
    def test_documented_default(self) -> None:
        s = resolve_settings()
        assert s.stop_loss_percentage is None
        assert s.take_profit_percentage is None
        assert s.trailing_stop_percentage is None
        assert s.position_sizing_method == "fixed"
        assert s.position_size_value == 100
        assert s.order_type_default == "market"
        assert s.slippage_model == "none"
        assert s.commission_rate == 0.0
        assert s.allow_partial_fills is True
        assert len(s.trading_days) == 7
        assert s.extended_hours is True

    def test_frozen(self) -> None:
        s = resolve_settings()
        with pytest.raises(Exception):
            s.commission_rate = 1.0  # type: ignore[misc]

    def test_resolved_settings_pass_through(self) -> None:
        s = resolve_settings({"commission_rate": 0.1})
        assert resolve_settings(s) is s


class TestOverrides:
    def test_override_wins(self) -> None:
        s = resolve_settings({"stop_loss_percentage": 5, "slippage_model": "fixed", "slippage_value": 0.2})
        assert s.stop_loss_percentage == 5
        assert s.slippage_model == "fixed"
        assert s.slippage_value == pytest.approx(0.2)

    def test_trading_days_kept_in_week_order(self) -> None:
        s = resolve_settings({"trading_days": ["FRI", "MON", "WED"]})
        assert s.trading_days == ("MON", "WED", "FRI")
        assert s.to_dict()["trading_days"] == ["MON", "WED", "FRI"]

    def test_inert_keys_ignored(self) -> None:
        s = resolve_settings(
            {"id": 7, "session_id": "abc", "rebalance_frequency": "daily", "enable_oco_orders": True}
        )
        assert isinstance(s, TradingSessionSettings)

    def test_enable_trailing_stop_false_clears_percentage(self) -> None:
        s = resolve_settings({"trailing_stop_percentage": 3, "enable_trailing_stop": False})
        assert s.trailing_stop_percentage is None

    def test_enable_trailing_stop_true_keeps_percentage(self) -> None:
        s = resolve_settings({"trailing_stop_percentage": 3, "enable_trailing_stop": True})
        assert s.trailing_stop_percentage == 3

    def test_empty_trading_days_allowed(self) -> None:
        assert resolve_settings({"trading_days": []}).trading_days == ()


class TestValidation:
    @pytest.mark.parametrize(
        "overrides",
        [
            {"stop_loss_percentage": 0},
            {"stop_loss_percentage": 150},
            {"position_sizing_method": "martingale"},
            {"order_type_default": "iceberg"},
            {"time_in_force": "forever"},
            {"slippage_model": "random"},
            {"commission_rate": -0.1},
            {"max_open_positions": 0},
            {"trading_days": ["MONDAY"]},
            {"trading_hours_start": "9:30"},
            {"unknown_key": 1},
        ],
    )
    def test_schema_errors(self, overrides: dict) -> None:
        with pytest.raises(SessionSettingsError, match="validation failed"):
            resolve_settings(overrides)

    @pytest.mark.parametrize(
        "overrides",
        [
            {"slippage_model": "fixed", "slippage_value": 100},
            {"slippage_model": "fixed", "slippage_value": 250},
            {"commission_rate": 100},
            {"commission_rate": 150},
        ],
    )
    def test_costs_that_would_zero_a_fill_rejected(self, overrides: dict) -> None:
        with pytest.raises(SessionSettingsError, match="validation failed"):
            resolve_settings(overrides)

    def test_costs_just_under_limit_accepted(self) -> None:
        s = resolve_settings({"slippage_model": "fixed", "slippage_value": 99.5, "commission_rate": 99.5})
        assert s.slippage_value == 99.5
        assert s.commission_rate == 99.5

    def test_proportional_slippage_capped_at_half(self) -> None:
        with pytest.raises(SessionSettingsError, match="below 50"):
            resolve_settings({"slippage_model": "proportional", "slippage_value": 50})
        assert resolve_settings({"slippage_model": "proportional", "slippage_value": 49}).slippage_value == 49

    def test_end_before_start(self) -> None:
        with pytest.raises(SessionSettingsError, match="trading_hours_end"):
            resolve_settings({"trading_hours_start": "16:00", "trading_hours_end": "09:30"})

    def test_not_a_mapping(self) -> None:
        with pytest.raises(SessionSettingsError):
            resolve_settings(["stop_loss_percentage"])  # type: ignore[arg-type]

    def test_settings_error_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            resolve_settings({"max_open_positions": -1})


class TestLoadFile:
    def test_json(self, tmp_path: Path) -> None:
        path = tmp_path / "session.json"
        path.write_text(json.dumps({"take_profit_percentage": 12, "commission_rate": 0.05}))
        s = load_session_settings(path)
        assert s.take_profit_percentage == 12
        assert s.commission_rate == pytest.approx(0.05)

    def test_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "session.yaml"
        path.write_text("position_sizing_method: percentage\nposition_size_value: 25\n")
        s = load_session_settings(path)
        assert s.position_sizing_method == "percentage"
        assert s.position_size_value == 25

    def test_empty_yaml_is_default(self, tmp_path: Path) -> None:
        path = tmp_path / "session.yml"
        path.write_text("")
        assert load_session_settings(path) == resolve_settings()

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(SessionSettingsError, match="not found"):
            load_session_settings(tmp_path / "nope.json")

    def test_bad_json(self, tmp_path: Path) -> None:
        path = tmp_path / "session.json"
        path.write_text("{not json")
        with pytest.raises(SessionSettingsError, match="not valid JSON"):
            load_session_settings(path)

    def test_non_mapping(self, tmp_path: Path) -> None:
        path = tmp_path / "session.yaml"
        path.write_text("- 1\n- 2\n")
        with pytest.raises(SessionSettingsError, match="mapping"):
            load_session_settings(path)
