"""
Data contracts for strategy-core: PriceBar, Signal, PositionState, Trade.

strategy-core consumes prices and produces signals. The backtest engine
consumes signals and produces Trades. No I/O; these are plain dataclasses.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class Signal(str, Enum):
    """Trading signal emitted by a generator. ``None`` means no action."""

    BUY = "BUY"
    SELL = "SELL"


class PositionState(str, Enum):
    """Position a generator believes it holds; suppresses duplicate signals."""

    NONE = "NONE"
    LONG = "LONG"
    SHORT = "SHORT"


class MAType(str, Enum):
    """Moving average flavour for crossover and band strategies."""

    SMA = "SMA"
    EMA = "EMA"


class ExitReason(str, Enum):
    """Why the risk manager forced a position closed."""

    STOP_LOSS = "STOP_LOSS"
    TAKE_PROFIT = "TAKE_PROFIT"
    TRAILING_STOP = "TRAILING_STOP"


@dataclass(frozen=True)
class PriceBar:
    """One bar of history. Ordering by date is assumed, never enforced."""

    date: datetime
    open: float
    close: float
    volume: float | None = None


@dataclass(frozen=True)
class Trade:
    """One executed fill in a backtest. Append-only; never mutated."""

    symbol: str
    date: datetime
    action: str  # "BUY" | "SELL"
    price: float
    shares: int
    reason: str | None = None
    commission: float = 0.0
    slippage: float = 0.0
    pnl: float | None = None
    indicators: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        record: dict[str, Any] = {
            "symbol": self.symbol,
            "date": self.date.isoformat(),
            "action": self.action,
            "price": self.price,
            "shares": self.shares,
            "commission": self.commission,
            "slippage": self.slippage,
        }
        if self.reason is not None:
            record["reason"] = self.reason
        if self.pnl is not None:
            record["pnl"] = self.pnl
        if self.indicators:
            record["indicators"] = dict(self.indicators)
        return record
