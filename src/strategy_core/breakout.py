"""
Breakout: trade moves through recent support/resistance on heavy volume.

Support and resistance are the min and max close over the
``lookback_window`` bars before the current one, kept with monotonic deques.
Volume ratio compares the current volume with the average over that same
window. Missing volume counts as 1.

    BUY   price > resistance * (1 + threshold), ratio >= min   and not LONG
    SELL  price < support * (1 - threshold),    ratio >= min   and not SHORT

Time-based exit: once a position has been held for ``confirmation_period``
bars it is closed by emitting the opposite action, whatever the levels say.
"""

from __future__ import annotations

from typing import Any

from strategy_core.base import SignalGenerator, require_int, require_number
from strategy_core.contracts import PositionState, Signal
from strategy_core.rolling import RollingMean, SlidingExtrema


class BreakoutStrategy(SignalGenerator):
    name = "breakout"

    def __init__(
        self,
        lookback_window: int = 20,
        breakout_threshold: float = 0.01,
        min_volume_ratio: float = 1.5,
        confirmation_period: int = 2,
    ) -> None:
        super().__init__()
        self.lookback_window = require_int("lookback_window", lookback_window)
        self.breakout_threshold = require_number("breakout_threshold", breakout_threshold, minimum=0)
        self.min_volume_ratio = require_number("min_volume_ratio", min_volume_ratio, minimum=0)
        self.confirmation_period = require_int("confirmation_period", confirmation_period)

        self._levels = SlidingExtrema(self.lookback_window)
        self._volume = RollingMean(self.lookback_window)
        self._held_bars = 0
        self._support: float | None = None
        self._resistance: float | None = None
        self._volume_ratio: float | None = None
        self._breakout_type: str | None = None

    def _on_price(self, price: float, volume: float | None) -> Signal | None:
        vol = float(volume) if volume is not None and volume > 0 else 1.0

        ready = self._levels.ready
        if ready:
            self._support = self._levels.minimum
            self._resistance = self._levels.maximum
            avg_volume = self._volume.value or 0.0
            self._volume_ratio = vol / avg_volume if avg_volume > 0 else 0.0
        self._levels.push(price)
        self._volume.push(vol)
        self._breakout_type = None

        if not ready or self._support is None or self._resistance is None:
            return None

        if self.position != PositionState.NONE:
            self._held_bars += 1
            if self._held_bars >= self.confirmation_period:
                held = self.position
                self.position = PositionState.NONE
                self._held_bars = 0
                self._breakout_type = "TIME_EXIT"
                return Signal.SELL if held == PositionState.LONG else Signal.BUY

        ratio = self._volume_ratio or 0.0
        if (
            price > self._resistance * (1 + self.breakout_threshold)
            and ratio >= self.min_volume_ratio
            and self.position != PositionState.LONG
        ):
            self._held_bars = 0
            self._breakout_type = "UPWARD"
            return self._enter_long()

        if (
            price < self._support * (1 - self.breakout_threshold)
            and ratio >= self.min_volume_ratio
            and self.position != PositionState.SHORT
        ):
            self.position = PositionState.SHORT
            self._held_bars = 0
            self._breakout_type = "DOWNWARD"
            return Signal.SELL

        return None

    def _reset_state(self) -> None:
        self._levels.reset()
        self._volume.reset()
        self._held_bars = 0
        self._support = None
        self._resistance = None
        self._volume_ratio = None
        self._breakout_type = None

    @property
    def levels(self) -> tuple[float | None, float | None]:
        """(support, resistance) used for the last decision."""
        return self._support, self._resistance

    def indicators(self) -> dict[str, Any]:
        if self._support is None:
            return {}
        values: dict[str, Any] = {
            "support": self._support,
            "resistance": self._resistance,
            "volume_ratio": self._volume_ratio,
        }
        if self._breakout_type:
            values["breakout_type"] = self._breakout_type
        return values

    def describe(self) -> str:
        return (
            f"Breakout: {self.lookback_window}-bar levels, {self.breakout_threshold * 100:.1f}% threshold, "
            f"{self.confirmation_period}-bar hold"
        )
