"""
Incremental indicators: every ``push`` is O(1) (amortized for extrema).

These hold only the state needed for the next update. Strategies compose
them; nothing here knows about signals or positions.

    RollingMean      simple moving average via rolling sum
    RollingVariance  population variance via rolling sum and sum of squares
    ExponentialMean  EMA seeded with the SMA of its first ``window`` values
    WilderRSI        RSI with Wilder smoothing
    SlidingExtrema   sliding-window min/max via monotonic deques
"""

from __future__ import annotations

import math
from collections import deque


class RollingMean:
    """Simple moving average over the last ``window`` values."""

    def __init__(self, window: int) -> None:
        self.window = window
        self._values: deque[float] = deque()
        self._sum = 0.0

    def push(self, value: float) -> None:
        self._values.append(value)
        self._sum += value
        if len(self._values) > self.window:
            self._sum -= self._values.popleft()

    @property
    def ready(self) -> bool:
        return len(self._values) >= self.window

    @property
    def count(self) -> int:
        return len(self._values)

    @property
    def total(self) -> float:
        return self._sum

    @property
    def value(self) -> float | None:
        if not self.ready:
            return None
        return self._sum / self.window

    def reset(self) -> None:
        self._values.clear()
        self._sum = 0.0


class RollingVariance:
    """Population variance of the last ``window`` values about any centre.

    Keeps the rolling sum and sum of squares so the dispersion about an
    arbitrary centre ``c`` is ``(sum_sq - 2*c*sum + n*c*c) / n``.
    """

    def __init__(self, window: int) -> None:
        self.window = window
        self._values: deque[float] = deque()
        self._sum = 0.0
        self._sum_sq = 0.0

    def push(self, value: float) -> None:
        self._values.append(value)
        self._sum += value
        self._sum_sq += value * value
        if len(self._values) > self.window:
            old = self._values.popleft()
            self._sum -= old
            self._sum_sq -= old * old

    @property
    def ready(self) -> bool:
        return len(self._values) >= self.window

    def variance_about(self, centre: float) -> float | None:
        if not self.ready:
            return None
        n = len(self._values)
        var = (self._sum_sq - 2.0 * centre * self._sum + n * centre * centre) / n
        # Rolling sums can drift a hair below zero on flat series.
        return max(var, 0.0)

    def stddev_about(self, centre: float) -> float | None:
        var = self.variance_about(centre)
        return None if var is None else math.sqrt(var)

    def reset(self) -> None:
        self._values.clear()
        self._sum = 0.0
        self._sum_sq = 0.0


class ExponentialMean:
    """EMA with multiplier ``2 / (window + 1)``.

    Returns None until ``window`` values have been seen; the first value is
    the SMA of those values, after which each push is a single update.
    """

    def __init__(self, window: int) -> None:
        self.window = window
        self.alpha = 2.0 / (window + 1)
        self._seed_sum = 0.0
        self._seen = 0
        self._ema: float | None = None

    def push(self, value: float) -> None:
        self._seen += 1
        if self._ema is None:
            self._seed_sum += value
            if self._seen >= self.window:
                self._ema = self._seed_sum / self.window
            return
        self._ema = value * self.alpha + self._ema * (1.0 - self.alpha)

    @property
    def ready(self) -> bool:
        return self._ema is not None

    @property
    def value(self) -> float | None:
        return self._ema

    def reset(self) -> None:
        self._seed_sum = 0.0
        self._seen = 0
        self._ema = None


def moving_average(window: int, ma_type: str) -> RollingMean | ExponentialMean:
    """Build an SMA or EMA tracker for ``window`` values."""
    if str(ma_type).upper() == "EMA":
        return ExponentialMean(window)
    return RollingMean(window)


class WilderRSI:
    """Relative Strength Index with Wilder's smoothing.

    The first ``period`` price deltas seed the average gain/loss as plain
    means; every later delta updates ``avg = (avg * (n - 1) + new) / n``.
    RSI is 100 whenever the average loss is zero.
    """

    def __init__(self, period: int) -> None:
        self.period = period
        self._prev: float | None = None
        self._deltas = 0
        self._gain_sum = 0.0
        self._loss_sum = 0.0
        self._avg_gain: float | None = None
        self._avg_loss: float | None = None

    def push(self, price: float) -> None:
        if self._prev is None:
            self._prev = price
            return
        change = price - self._prev
        self._prev = price
        gain = change if change > 0 else 0.0
        loss = -change if change < 0 else 0.0
        self._deltas += 1

        if self._avg_gain is None or self._avg_loss is None:
            self._gain_sum += gain
            self._loss_sum += loss
            if self._deltas >= self.period:
                self._avg_gain = self._gain_sum / self.period
                self._avg_loss = self._loss_sum / self.period
            return

        n = self.period
        self._avg_gain = (self._avg_gain * (n - 1) + gain) / n
        self._avg_loss = (self._avg_loss * (n - 1) + loss) / n

    @property
    def ready(self) -> bool:
        return self._avg_gain is not None

    @property
    def value(self) -> float | None:
        if self._avg_gain is None or self._avg_loss is None:
            return None
        if self._avg_loss == 0:
            return 100.0
        rs = self._avg_gain / self._avg_loss
        return 100.0 - 100.0 / (1.0 + rs)

    def reset(self) -> None:
        self._prev = None
        self._deltas = 0
        self._gain_sum = 0.0
        self._loss_sum = 0.0
        self._avg_gain = None
        self._avg_loss = None


class SlidingExtrema:
    """Sliding-window min and max over the last ``window`` pushes.

    Two monotonic deques of ``(index, value)``: the min deque is increasing
    and the max deque decreasing, so the front of each is the answer. Each
    value enters and leaves each deque at most once.
    """

    def __init__(self, window: int) -> None:
        self.window = window
        self._index = 0
        self._min: deque[tuple[int, float]] = deque()
        self._max: deque[tuple[int, float]] = deque()

    def push(self, value: float) -> None:
        idx = self._index
        self._index += 1
        cutoff = idx - self.window + 1

        while self._min and self._min[-1][1] >= value:
            self._min.pop()
        self._min.append((idx, value))
        while self._min[0][0] < cutoff:
            self._min.popleft()

        while self._max and self._max[-1][1] <= value:
            self._max.pop()
        self._max.append((idx, value))
        while self._max[0][0] < cutoff:
            self._max.popleft()

    @property
    def ready(self) -> bool:
        return self._index >= self.window

    @property
    def minimum(self) -> float | None:
        return self._min[0][1] if self._min else None

    @property
    def maximum(self) -> float | None:
        return self._max[0][1] if self._max else None

    def reset(self) -> None:
        self._index = 0
        self._min.clear()
        self._max.clear()
