"""
SignalGenerator base: the contract every strategy implements.

    add_price(price, volume=None) -> Signal | None
    reset()
    indicators() -> dict

Each generator tracks the position it believes it holds so it never emits
two BUYs (or two SELLs) in a row. Bad prices are skipped, never raised on.
Malformed parameters raise StrategyConfigError at construction time.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from typing import Any

from strategy_core.contracts import PositionState, Signal


class StrategyConfigError(ValueError):
    """Raised when strategy parameters are malformed or the strategy is unknown."""


def require_int(name: str, value: Any, *, minimum: int = 1) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise StrategyConfigError(f"{name} must be an integer, got {value!r}")
    if value < minimum:
        raise StrategyConfigError(f"{name} must be >= {minimum}, got {value}")
    return value


def require_number(
    name: str,
    value: Any,
    *,
    minimum: float | None = None,
    maximum: float | None = None,
    strictly_positive: bool = False,
) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise StrategyConfigError(f"{name} must be a finite number, got {value!r}")
    if strictly_positive and value <= 0:
        raise StrategyConfigError(f"{name} must be > 0, got {value}")
    if minimum is not None and value < minimum:
        raise StrategyConfigError(f"{name} must be >= {minimum}, got {value}")
    if maximum is not None and value > maximum:
        raise StrategyConfigError(f"{name} must be <= {maximum}, got {value}")
    return float(value)


def is_usable_price(price: Any) -> bool:
    """True for finite, strictly positive numbers."""
    if isinstance(price, bool) or not isinstance(price, (int, float)):
        return False
    return math.isfinite(price) and price > 0


class SignalGenerator(ABC):
    """Stateful, incremental price-to-signal converter."""

    name: str = "signal_generator"

    def __init__(self) -> None:
        self.position = PositionState.NONE
        self.last_signal: Signal | None = None

    def add_price(self, price: float, volume: float | None = None) -> Signal | None:
        """Feed one bar. Returns BUY, SELL or None."""
        if not is_usable_price(price):
            self.last_signal = None
            return None
        signal = self._on_price(float(price), volume)
        self.last_signal = signal
        return signal

    @abstractmethod
    def _on_price(self, price: float, volume: float | None) -> Signal | None:
        """Update rolling state with a validated price and decide."""

    @abstractmethod
    def _reset_state(self) -> None:
        """Clear indicator windows."""

    def reset(self) -> None:
        self.position = PositionState.NONE
        self.last_signal = None
        self._reset_state()

    def indicators(self) -> dict[str, Any]:
        """Current indicator values for trade diagnostics."""
        return {}

    def describe(self) -> str:
        return self.name

    # -- helpers for subclasses ---------------------------------------------

    def _enter_long(self) -> Signal:
        self.position = PositionState.LONG
        return Signal.BUY

    def _flatten(self) -> Signal:
        self.position = PositionState.NONE
        return Signal.SELL
