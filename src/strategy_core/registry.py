"""
Strategy registry: name + parameter mapping -> SignalGenerator.

Built-in names are snake_case; camelCase names and parameter keys
(``meanReversion``, ``fastWindow``) are accepted and normalized. Unknown
strategies and unknown or malformed parameters raise StrategyConfigError
before any bar is processed.

Additional generators (e.g. rules compiled from a condition tree) plug in
through ``register_strategy``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

from strategy_core.base import SignalGenerator, StrategyConfigError
from strategy_core.bollinger_bands import BollingerBandsStrategy
from strategy_core.breakout import BreakoutStrategy
from strategy_core.ma_crossover import MovingAverageCrossoverStrategy
from strategy_core.mean_reversion import MeanReversionStrategy
from strategy_core.momentum import MomentumStrategy

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def normalize_key(key: str) -> str:
    """``fastWindow`` -> ``fast_window``; ``MeanReversion`` -> ``mean_reversion``."""
    return _CAMEL_BOUNDARY.sub("_", key.strip()).replace("-", "_").lower()


@dataclass(frozen=True)
class StrategySpec:
    name: str
    factory: Callable[..., SignalGenerator]
    defaults: Mapping[str, Any] = field(default_factory=dict)
    strict: bool = True  # reject parameters not named in defaults


_REGISTRY: dict[str, StrategySpec] = {}


def register_strategy(
    name: str,
    factory: Callable[..., SignalGenerator],
    defaults: Mapping[str, Any] | None = None,
    *,
    strict: bool = False,
) -> None:
    """Register a generator factory under ``name`` (replaces an existing entry)."""
    if not callable(factory):
        raise StrategyConfigError(f"Factory for strategy {name!r} must be callable")
    key = normalize_key(name)
    _REGISTRY[key] = StrategySpec(name=key, factory=factory, defaults=dict(defaults or {}), strict=strict)


def unregister_strategy(name: str) -> None:
    _REGISTRY.pop(normalize_key(name), None)


def available_strategies() -> dict[str, dict[str, Any]]:
    """Registered strategy names mapped to their default parameters."""
    return {name: dict(spec.defaults) for name, spec in sorted(_REGISTRY.items())}


def build_strategy(name: str, params: Mapping[str, Any] | None = None) -> SignalGenerator:
    """Construct a fresh generator. Raises StrategyConfigError on bad input."""
    if not isinstance(name, str) or not name.strip():
        raise StrategyConfigError(f"Strategy name must be a non-empty string, got {name!r}")
    spec = _REGISTRY.get(normalize_key(name))
    if spec is None:
        known = ", ".join(sorted(_REGISTRY))
        raise StrategyConfigError(f"Unknown strategy {name!r}. Known strategies: {known}")

    supplied = {normalize_key(k): v for k, v in (params or {}).items()}
    if spec.strict:
        unknown = sorted(set(supplied) - set(spec.defaults))
        if unknown:
            raise StrategyConfigError(f"Unknown parameter(s) for {spec.name}: {', '.join(unknown)}")

    merged = {**spec.defaults, **supplied}
    try:
        return spec.factory(**merged)
    except TypeError as exc:
        raise StrategyConfigError(f"Invalid parameters for {spec.name}: {exc}") from exc


def _register_builtins() -> None:
    builtins = [
        (MeanReversionStrategy, {"window": 20, "threshold": 0.05}),
        (MovingAverageCrossoverStrategy, {"fast_window": 10, "slow_window": 30, "ma_type": "SMA"}),
        (
            MomentumStrategy,
            {
                "rsi_window": 14,
                "rsi_overbought": 70.0,
                "rsi_oversold": 30.0,
                "momentum_window": 10,
                "momentum_threshold": 0.02,
            },
        ),
        (BollingerBandsStrategy, {"window": 20, "multiplier": 2.0, "ma_type": "SMA"}),
        (
            BreakoutStrategy,
            {
                "lookback_window": 20,
                "breakout_threshold": 0.01,
                "min_volume_ratio": 1.5,
                "confirmation_period": 2,
            },
        ),
    ]
    for cls, defaults in builtins:
        register_strategy(cls.name, cls, defaults, strict=True)


_register_builtins()
