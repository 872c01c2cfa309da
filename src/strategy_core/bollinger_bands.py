"""
Bollinger Bands: fade moves outside a volatility envelope.

    middle = SMA or EMA over ``window`` bars (current bar included)
    upper  = middle + multiplier * stddev
    lower  = middle - multiplier * stddev

stddev is the population deviation of the window about the middle band.
A flat window has zero-width bands and never signals.
"""

from __future__ import annotations

from typing import Any

from strategy_core.base import SignalGenerator, require_int, require_number
from strategy_core.contracts import PositionState, Signal
from strategy_core.ma_crossover import parse_ma_type
from strategy_core.rolling import RollingVariance, moving_average


class BollingerBandsStrategy(SignalGenerator):
    name = "bollinger_bands"

    def __init__(self, window: int = 20, multiplier: float = 2.0, ma_type: str = "SMA") -> None:
        super().__init__()
        self.window = require_int("window", window, minimum=2)
        self.multiplier = require_number("multiplier", multiplier, strictly_positive=True)
        self.ma_type = parse_ma_type(ma_type)
        self._middle = moving_average(self.window, self.ma_type.value)
        self._dispersion = RollingVariance(self.window)
        self._bands: tuple[float, float, float] | None = None
        self._band_position: float | None = None

    def _on_price(self, price: float, volume: float | None) -> Signal | None:
        self._middle.push(price)
        self._dispersion.push(price)
        middle = self._middle.value
        if middle is None or not self._dispersion.ready:
            self._bands = None
            self._band_position = None
            return None

        std = self._dispersion.stddev_about(middle) or 0.0
        upper = middle + self.multiplier * std
        lower = middle - self.multiplier * std
        self._bands = (upper, middle, lower)
        if upper <= lower:
            self._band_position = None
            return None
        self._band_position = (price - lower) / (upper - lower)

        if price <= lower and self.position != PositionState.LONG:
            return self._enter_long()
        if price >= upper and self.position == PositionState.LONG:
            return self._flatten()
        return None

    def _reset_state(self) -> None:
        self._middle.reset()
        self._dispersion.reset()
        self._bands = None
        self._band_position = None

    @property
    def bands(self) -> tuple[float, float, float] | None:
        """(upper, middle, lower) as of the last bar, or None during warm-up."""
        return self._bands

    def indicators(self) -> dict[str, Any]:
        if self._bands is None:
            return {}
        upper, middle, lower = self._bands
        values: dict[str, Any] = {"upper_band": upper, "middle_band": middle, "lower_band": lower}
        if self._band_position is not None:
            values["band_position"] = self._band_position
        return values

    def describe(self) -> str:
        return f"Bollinger Bands: {self.window}-bar {self.ma_type.value} with {self.multiplier:g}x stddev"
