"""
Custom strategy: adapt any rule over recent history to the generator contract.

The rule sees the bounded price/volume history (oldest first, current bar
last) and returns BUY, SELL or None. Warm-up and duplicate suppression are
handled here so a rule only has to express its conditions.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Callable, Sequence

from strategy_core.base import StrategyConfigError, SignalGenerator, require_int
from strategy_core.contracts import PositionState, Signal

logger = logging.getLogger("backtester.strategy")

Rule = Callable[[Sequence[float], Sequence[float | None]], "Signal | str | None"]


def _coerce_signal(value: Signal | str | None) -> Signal | None:
    """Rule output as a Signal; anything unrecognized is logged and treated as no signal."""
    if value is None or isinstance(value, Signal):
        return value
    try:
        return Signal(str(value).upper())
    except ValueError:
        logger.warning("Custom rule returned %r; expected BUY, SELL or None", value)
        return None


class CustomStrategy(SignalGenerator):
    name = "custom"

    def __init__(
        self,
        rule: Rule,
        *,
        min_periods: int = 10,
        max_history: int = 500,
        name: str | None = None,
    ) -> None:
        super().__init__()
        if not callable(rule):
            raise StrategyConfigError("Custom strategy rule must be callable")
        self.rule = rule
        self.min_periods = require_int("min_periods", min_periods)
        self.max_history = require_int("max_history", max_history)
        if self.max_history < self.min_periods:
            raise StrategyConfigError(
                f"max_history ({self.max_history}) must be at least min_periods ({self.min_periods})"
            )
        if name:
            self.name = name
        self._prices: deque[float] = deque(maxlen=self.max_history)
        self._volumes: deque[float | None] = deque(maxlen=self.max_history)

    def _on_price(self, price: float, volume: float | None) -> Signal | None:
        self._prices.append(price)
        self._volumes.append(volume)
        if len(self._prices) < self.min_periods:
            return None

        wanted = _coerce_signal(self.rule(tuple(self._prices), tuple(self._volumes)))
        if wanted == Signal.BUY and self.position != PositionState.LONG:
            return self._enter_long()
        if wanted == Signal.SELL and self.position == PositionState.LONG:
            return self._flatten()
        return None

    def _reset_state(self) -> None:
        self._prices.clear()
        self._volumes.clear()

    def describe(self) -> str:
        return f"Custom strategy '{self.name}' (min {self.min_periods} bars)"
