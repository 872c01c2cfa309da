"""Pytest fixtures: price series and bar sequences for deterministic tests."""

from datetime import datetime, timedelta, timezone

import pytest

from config.session_settings import TradingSessionSettings, resolve_settings
from strategy_core.contracts import PriceBar


def _ts(year: int, month: int, day: int, hour: int = 14, minute: int = 30) -> datetime:
    return datetime(year, month, day, hour, minute, 0, tzinfo=timezone.utc)


def make_bars(
    closes: list[float],
    *,
    start: datetime | None = None,
    volumes: list[float | None] | None = None,
    step: timedelta = timedelta(days=1),
) -> list[PriceBar]:
    """One bar per close, ``step`` apart; open equals the previous close."""
    start = start or _ts(2024, 1, 1)
    bars = []
    prev = closes[0] if closes else 0.0
    for i, close in enumerate(closes):
        volume = volumes[i] if volumes is not None else 1_000_000
        bars.append(PriceBar(date=start + i * step, open=prev, close=close, volume=volume))
        prev = close
    return bars


@pytest.fixture
def symbol() -> str:
    return "SPY"


@pytest.fixture
def default_settings() -> TradingSessionSettings:
    return resolve_settings()


@pytest.fixture
def dip_and_recover_closes() -> list[float]:
    """Flat at 100, dip to 90 (BUY for a 5-bar / 5% mean reversion), recover to 110 (SELL)."""
    return [100.0] * 5 + [90.0, 95.0, 100.0, 105.0, 110.0, 108.0]


@pytest.fixture
def dip_and_recover_bars(dip_and_recover_closes: list[float]) -> list[PriceBar]:
    return make_bars(dip_and_recover_closes)


@pytest.fixture
def mean_reversion_example_closes() -> list[float]:
    """MA of the first five is 102; the sixth close deviates about -6.9%."""
    return [100.0, 101.0, 102.0, 103.0, 104.0, 95.0]
