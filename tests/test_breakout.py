"""Tests for BreakoutStrategy: prior-window levels, volume confirmation, time exit."""

import pytest

from strategy_core import BreakoutStrategy, PositionState, Signal, StrategyConfigError


def _feed(strategy: BreakoutStrategy, bars: list[tuple[float, float | None]]) -> list[Signal | None]:
    return [strategy.add_price(p, v) for p, v in bars]


BASE = [(100.0, 1000.0), (101.0, 1000.0), (102.0, 1000.0)]


@pytest.fixture
def strategy() -> BreakoutStrategy:
    return BreakoutStrategy(lookback_window=3, breakout_threshold=0.01, min_volume_ratio=1.5, confirmation_period=2)


class TestBreakouts:
    def test_upward_breakout_on_volume(self, strategy: BreakoutStrategy) -> None:
        signals = _feed(strategy, BASE + [(104.0, 2000.0)])
        assert signals == [None, None, None, Signal.BUY]
        ind = strategy.indicators()
        assert ind["resistance"] == 102.0
        assert ind["support"] == 100.0
        assert ind["volume_ratio"] == pytest.approx(2.0)
        assert ind["breakout_type"] == "UPWARD"

    def test_breakout_without_volume_is_ignored(self, strategy: BreakoutStrategy) -> None:
        signals = _feed(strategy, BASE + [(104.0, 1000.0)])
        assert signals[-1] is None
        assert strategy.position == PositionState.NONE

    def test_price_inside_threshold_is_ignored(self, strategy: BreakoutStrategy) -> None:
        # 102 * 1.01 = 103.02
        signals = _feed(strategy, BASE + [(103.0, 5000.0)])
        assert signals[-1] is None

    def test_downward_breakout_goes_short(self, strategy: BreakoutStrategy) -> None:
        signals = _feed(strategy, BASE + [(98.0, 2000.0)])
        assert signals[-1] == Signal.SELL
        assert strategy.position == PositionState.SHORT
        assert strategy.indicators()["breakout_type"] == "DOWNWARD"

    def test_missing_volume_counts_as_one(self) -> None:
        s = BreakoutStrategy(lookback_window=3, breakout_threshold=0.01, min_volume_ratio=1.0)
        signals = _feed(s, [(100.0, None), (101.0, None), (102.0, None), (104.0, None)])
        assert signals[-1] == Signal.BUY
        assert s.indicators()["volume_ratio"] == pytest.approx(1.0)


class TestTimeExit:
    def test_long_closed_after_confirmation_period(self, strategy: BreakoutStrategy) -> None:
        signals = _feed(strategy, BASE + [(104.0, 2000.0), (104.0, 1000.0), (104.0, 1000.0)])
        assert signals[3:] == [Signal.BUY, None, Signal.SELL]
        assert strategy.position == PositionState.NONE
        assert strategy.indicators()["breakout_type"] == "TIME_EXIT"

    def test_short_closed_with_buy(self, strategy: BreakoutStrategy) -> None:
        signals = _feed(strategy, BASE + [(98.0, 2000.0), (98.0, 1000.0), (98.0, 1000.0)])
        assert signals[3:] == [Signal.SELL, None, Signal.BUY]
        assert strategy.position == PositionState.NONE

    def test_reset(self, strategy: BreakoutStrategy) -> None:
        _feed(strategy, BASE + [(104.0, 2000.0)])
        strategy.reset()
        assert strategy.levels == (None, None)
        assert strategy.position == PositionState.NONE
        assert _feed(strategy, BASE + [(104.0, 2000.0)])[-1] == Signal.BUY


class TestConfig:
    @pytest.mark.parametrize(
        "kwargs",
        [{"lookback_window": 0}, {"breakout_threshold": -0.1}, {"confirmation_period": 0}],
    )
    def test_invalid(self, kwargs: dict) -> None:
        with pytest.raises(StrategyConfigError):
            BreakoutStrategy(**kwargs)
