"""
Momentum: RSI (Wilder smoothing) combined with rate of change.

    RSI       seeded over the first ``rsi_window`` deltas, then smoothed
    momentum  (price - price[n - momentum_window]) / price[n - momentum_window]

    BUY   (RSI <= oversold and momentum > 0)
          or (momentum >= threshold and RSI < overbought)     and not LONG
    SELL  RSI >= overbought or momentum <= -threshold         and LONG

No signal until the RSI is seeded and a full momentum lookback exists.
"""

from __future__ import annotations

from collections import deque
from typing import Any

from strategy_core.base import StrategyConfigError, SignalGenerator, require_int, require_number
from strategy_core.contracts import PositionState, Signal
from strategy_core.rolling import WilderRSI


class MomentumStrategy(SignalGenerator):
    name = "momentum"

    def __init__(
        self,
        rsi_window: int = 14,
        rsi_overbought: float = 70.0,
        rsi_oversold: float = 30.0,
        momentum_window: int = 10,
        momentum_threshold: float = 0.02,
    ) -> None:
        super().__init__()
        self.rsi_window = require_int("rsi_window", rsi_window)
        self.rsi_overbought = require_number("rsi_overbought", rsi_overbought, minimum=0, maximum=100)
        self.rsi_oversold = require_number("rsi_oversold", rsi_oversold, minimum=0, maximum=100)
        if self.rsi_oversold >= self.rsi_overbought:
            raise StrategyConfigError(
                f"rsi_oversold ({self.rsi_oversold}) must be below rsi_overbought ({self.rsi_overbought})"
            )
        self.momentum_window = require_int("momentum_window", momentum_window)
        self.momentum_threshold = require_number("momentum_threshold", momentum_threshold, minimum=0)

        self._rsi = WilderRSI(self.rsi_window)
        self._lookback: deque[float] = deque(maxlen=self.momentum_window + 1)
        self._last_rsi: float | None = None
        self._last_momentum: float | None = None

    def _on_price(self, price: float, volume: float | None) -> Signal | None:
        self._rsi.push(price)
        self._lookback.append(price)

        rsi = self._rsi.value
        momentum: float | None = None
        if len(self._lookback) > self.momentum_window:
            past = self._lookback[0]
            momentum = (price - past) / past
        self._last_rsi = rsi
        self._last_momentum = momentum

        if rsi is None or momentum is None:
            return None

        if self.position != PositionState.LONG:
            if rsi <= self.rsi_oversold and momentum > 0:
                return self._enter_long()
            if momentum >= self.momentum_threshold and rsi < self.rsi_overbought:
                return self._enter_long()

        if self.position == PositionState.LONG:
            if rsi >= self.rsi_overbought or momentum <= -self.momentum_threshold:
                return self._flatten()

        return None

    def _reset_state(self) -> None:
        self._rsi.reset()
        self._lookback.clear()
        self._last_rsi = None
        self._last_momentum = None

    @property
    def rsi(self) -> float | None:
        return self._rsi.value

    def indicators(self) -> dict[str, Any]:
        values: dict[str, Any] = {}
        if self._last_rsi is not None:
            values["rsi"] = self._last_rsi
        if self._last_momentum is not None:
            values["momentum"] = self._last_momentum
        return values

    def describe(self) -> str:
        return (
            f"Momentum: RSI({self.rsi_window}) {self.rsi_oversold:g}/{self.rsi_overbought:g}, "
            f"Momentum({self.momentum_window}) {self.momentum_threshold * 100:.1f}%"
        )
