"""
Mean reversion: trade the deviation of price from its moving average.

The average is taken over the ``window`` bars before the current one, so the
bar being judged never dilutes its own baseline. With window=5 and prices
100..104 followed by 95, MA=102 and the deviation is about -6.9%.

    BUY   (price - MA) / MA <= -threshold   and not LONG
    SELL  (price - MA) / MA >= +threshold   and LONG
"""

from __future__ import annotations

from typing import Any

from strategy_core.base import SignalGenerator, require_int, require_number
from strategy_core.contracts import PositionState, Signal
from strategy_core.rolling import RollingMean


class MeanReversionStrategy(SignalGenerator):
    name = "mean_reversion"

    def __init__(self, window: int = 20, threshold: float = 0.05) -> None:
        super().__init__()
        self.window = require_int("window", window)
        self.threshold = require_number("threshold", threshold, strictly_positive=True)
        self._ma = RollingMean(self.window)
        self._moving_average: float | None = None
        self._deviation: float | None = None

    def _on_price(self, price: float, volume: float | None) -> Signal | None:
        ma = self._ma.value
        self._ma.push(price)
        if ma is None or ma <= 0:
            self._moving_average = None
            self._deviation = None
            return None

        deviation = (price - ma) / ma
        self._moving_average = ma
        self._deviation = deviation

        if deviation <= -self.threshold and self.position != PositionState.LONG:
            return self._enter_long()
        if deviation >= self.threshold and self.position == PositionState.LONG:
            return self._flatten()
        return None

    def _reset_state(self) -> None:
        self._ma.reset()
        self._moving_average = None
        self._deviation = None

    def indicators(self) -> dict[str, Any]:
        if self._moving_average is None:
            return {}
        return {"moving_average": self._moving_average, "deviation": self._deviation}

    def describe(self) -> str:
        return f"Mean Reversion: {self.window}-bar MA with {self.threshold * 100:.1f}% threshold"
