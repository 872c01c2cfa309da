"""
Moving average crossover: trend following on fast/slow MA crossings.

A signal needs the previous bar's MA pair as well as the current one; the
edge matters, not the current ordering.

    golden cross  prev_fast <= prev_slow and fast > slow  -> BUY  (not LONG)
    death cross   prev_fast >= prev_slow and fast < slow  -> SELL (LONG)
"""

from __future__ import annotations

from typing import Any

from strategy_core.base import StrategyConfigError, SignalGenerator, require_int
from strategy_core.contracts import MAType, PositionState, Signal
from strategy_core.rolling import moving_average


def parse_ma_type(value: Any) -> MAType:
    try:
        return MAType(str(value).upper())
    except ValueError:
        raise StrategyConfigError(f"ma_type must be SMA or EMA, got {value!r}") from None


class MovingAverageCrossoverStrategy(SignalGenerator):
    name = "moving_average_crossover"

    def __init__(self, fast_window: int = 10, slow_window: int = 30, ma_type: str = "SMA") -> None:
        super().__init__()
        self.fast_window = require_int("fast_window", fast_window)
        self.slow_window = require_int("slow_window", slow_window)
        if self.fast_window >= self.slow_window:
            raise StrategyConfigError(
                f"fast_window ({self.fast_window}) must be smaller than slow_window ({self.slow_window})"
            )
        self.ma_type = parse_ma_type(ma_type)
        self._fast = moving_average(self.fast_window, self.ma_type.value)
        self._slow = moving_average(self.slow_window, self.ma_type.value)
        self._prev_fast: float | None = None
        self._prev_slow: float | None = None
        self._crossover: str | None = None

    def _on_price(self, price: float, volume: float | None) -> Signal | None:
        self._fast.push(price)
        self._slow.push(price)
        fast = self._fast.value
        slow = self._slow.value
        self._crossover = None
        if fast is None or slow is None:
            return None

        signal: Signal | None = None
        if self._prev_fast is not None and self._prev_slow is not None:
            if self._prev_fast <= self._prev_slow and fast > slow and self.position != PositionState.LONG:
                self._crossover = "GOLDEN"
                signal = self._enter_long()
            elif self._prev_fast >= self._prev_slow and fast < slow and self.position == PositionState.LONG:
                self._crossover = "DEATH"
                signal = self._flatten()

        self._prev_fast = fast
        self._prev_slow = slow
        return signal

    def _reset_state(self) -> None:
        self._fast.reset()
        self._slow.reset()
        self._prev_fast = None
        self._prev_slow = None
        self._crossover = None

    def indicators(self) -> dict[str, Any]:
        if self._prev_fast is None:
            return {}
        values: dict[str, Any] = {"fast_ma": self._prev_fast, "slow_ma": self._prev_slow}
        if self._crossover:
            values["crossover"] = self._crossover
        return values

    def describe(self) -> str:
        return f"MA Crossover: {self.fast_window}/{self.slow_window}-bar {self.ma_type.value}"
