"""Tests for MeanReversionStrategy: deviation from the prior-window moving average."""

import math

import pytest

from strategy_core import MeanReversionStrategy, PositionState, Signal, StrategyConfigError


def _feed(strategy: MeanReversionStrategy, prices: list[float]) -> list[Signal | None]:
    return [strategy.add_price(p) for p in prices]


class TestSignals:
    def test_buy_on_sixth_bar(self, mean_reversion_example_closes: list[float]) -> None:
        s = MeanReversionStrategy(window=5, threshold=0.05)
        signals = _feed(s, mean_reversion_example_closes)
        assert signals[:5] == [None] * 5
        assert signals[5] == Signal.BUY
        ind = s.indicators()
        assert ind["moving_average"] == pytest.approx(102.0)
        assert ind["deviation"] == pytest.approx((95 - 102) / 102)

    def test_no_duplicate_buy_while_long(self) -> None:
        s = MeanReversionStrategy(window=3, threshold=0.05)
        signals = _feed(s, [100.0, 100.0, 100.0, 90.0, 80.0])
        assert signals[3] == Signal.BUY
        assert signals[4] is None
        assert s.position == PositionState.LONG

    def test_sell_when_long_and_above_band(self, dip_and_recover_closes: list[float]) -> None:
        s = MeanReversionStrategy(window=5, threshold=0.05)
        signals = _feed(s, dip_and_recover_closes)
        assert signals.index(Signal.BUY) == 5
        assert signals.index(Signal.SELL) == 8
        assert s.position == PositionState.NONE

    def test_no_sell_without_position(self) -> None:
        s = MeanReversionStrategy(window=3, threshold=0.05)
        signals = _feed(s, [100.0, 100.0, 100.0, 120.0])
        assert signals[-1] is None

    def test_shorter_than_window_never_signals(self) -> None:
        s = MeanReversionStrategy(window=20, threshold=0.01)
        assert _feed(s, [100.0, 50.0, 200.0, 10.0]) == [None] * 4


class TestBadInput:
    @pytest.mark.parametrize("price", [0.0, -5.0, math.nan, math.inf])
    def test_bad_prices_are_skipped(self, price: float) -> None:
        s = MeanReversionStrategy(window=3, threshold=0.05)
        _feed(s, [100.0, 100.0])
        assert s.add_price(price) is None
        # The bad price never entered the window: two more bars are still needed.
        assert s.add_price(100.0) is None
        assert s.add_price(90.0) == Signal.BUY

    @pytest.mark.parametrize(
        "kwargs",
        [{"window": 0}, {"window": 2.5}, {"window": True}, {"threshold": 0}, {"threshold": "x"}],
    )
    def test_invalid_config_raises(self, kwargs: dict) -> None:
        with pytest.raises(StrategyConfigError):
            MeanReversionStrategy(**kwargs)


class TestReset:
    def test_reset_clears_window_and_position(self, mean_reversion_example_closes: list[float]) -> None:
        s = MeanReversionStrategy(window=5, threshold=0.05)
        _feed(s, mean_reversion_example_closes)
        s.reset()
        assert s.position == PositionState.NONE
        assert s.indicators() == {}
        assert _feed(s, mean_reversion_example_closes)[5] == Signal.BUY

    def test_describe(self) -> None:
        assert "20-bar" in MeanReversionStrategy().describe()
