"""
Portfolio: cash, per-symbol positions and realized P&L for one backtest run.

One composed type parameterized by session settings at construction.
Sizes entries, gates them against risk and trading-window rules, detects
stop-loss / take-profit / trailing-stop exits, and settles fills.

Nothing here raises for ordinary trading conditions: refusals come back as
``Decision`` / ``SettlementResult`` values carrying a reason.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field, replace
from datetime import date as date_type
from datetime import datetime, timezone
from typing import Iterable, Mapping

from config.session_settings import WEEKDAYS, TradingSessionSettings, resolve_settings
from strategy_core.contracts import ExitReason

logger = logging.getLogger("backtester.portfolio")


def _utc(ts: datetime) -> datetime:
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def _clock_minutes(value: str) -> int:
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


@dataclass
class Position:
    symbol: str
    shares: int = 0
    avg_price: float = 0.0
    entry_price: float = 0.0
    entry_date: datetime | None = None
    highest_price_since_entry: float | None = None

    @property
    def is_open(self) -> bool:
        return self.shares > 0

    def clear(self) -> None:
        self.shares = 0
        self.avg_price = 0.0
        self.entry_price = 0.0
        self.entry_date = None
        self.highest_price_since_entry = None


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: str | None = None


@dataclass(frozen=True)
class SettlementResult:
    success: bool
    quantity: int = 0
    pnl: float = 0.0
    reason: str | None = None


@dataclass(frozen=True)
class PortfolioStatus:
    cash: float
    total_value: float
    positions: dict[str, int] = field(default_factory=dict)
    daily_pnl: float = 0.0
    total_pnl: float = 0.0
    open_positions_count: int = 0


class Portfolio:
    """Risk-aware position book for a single run."""

    def __init__(
        self,
        initial_capital: float = 10_000.0,
        settings: TradingSessionSettings | None = None,
        symbols: Iterable[str] = (),
    ) -> None:
        if not math.isfinite(initial_capital) or initial_capital <= 0:
            raise ValueError(f"initial_capital must be positive, got {initial_capital}")
        self._settings = resolve_settings(settings)
        self._initial_capital = float(initial_capital)
        self._cash = float(initial_capital)
        self._positions: dict[str, Position] = {s: Position(symbol=s) for s in symbols}
        self._daily_pnl = 0.0
        self._total_pnl = 0.0
        self._last_trade_day: date_type | None = None
        self._daily_loss_limit_reached = False

    # -- accessors -----------------------------------------------------------

    @property
    def settings(self) -> TradingSessionSettings:
        return self._settings

    @property
    def initial_capital(self) -> float:
        return self._initial_capital

    @property
    def cash(self) -> float:
        return self._cash

    @property
    def daily_pnl(self) -> float:
        return self._daily_pnl

    @property
    def total_pnl(self) -> float:
        return self._total_pnl

    @property
    def daily_loss_limit_reached(self) -> bool:
        return self._daily_loss_limit_reached

    def get_position(self, symbol: str) -> Position:
        """Copy of the position for *symbol* (empty when never traded)."""
        pos = self._positions.get(symbol)
        return replace(pos) if pos is not None else Position(symbol=symbol)

    def open_positions_count(self) -> int:
        return sum(1 for p in self._positions.values() if p.is_open)

    def total_value(self, prices: Mapping[str, float] | None = None) -> float:
        """Cash plus open positions marked at *prices* (average cost when unpriced)."""
        prices = prices or {}
        value = self._cash
        for sym, pos in self._positions.items():
            if pos.is_open:
                value += pos.shares * prices.get(sym, pos.avg_price)
        return value

    def status(self, prices: Mapping[str, float] | None = None) -> PortfolioStatus:
        return PortfolioStatus(
            cash=self._cash,
            total_value=self.total_value(prices),
            positions={s: p.shares for s, p in self._positions.items() if p.is_open},
            daily_pnl=self._daily_pnl,
            total_pnl=self._total_pnl,
            open_positions_count=self.open_positions_count(),
        )

    # -- sizing and gating ---------------------------------------------------

    def calculate_position_size(self, symbol: str, price: float) -> int:
        """Shares to buy at *price* under the configured sizing method."""
        if not math.isfinite(price) or price <= 0:
            return 0
        s = self._settings
        total_value = self.total_value({symbol: price})
        method = s.position_sizing_method

        if method == "fixed":
            return int(s.position_size_value)

        if method in ("percentage", "kelly"):
            # kelly: position_size_value is the Kelly fraction, in percent
            pct = min(s.position_size_value, s.max_position_size_percentage)
            return max(0, math.floor(total_value * pct / 100 / price))

        if method == "equal_weight":
            if self.open_positions_count() >= s.max_open_positions:
                return 0
            return max(0, math.floor(total_value / s.max_open_positions / price))

        logger.warning("Unknown sizing method %r; sizing to zero", method)
        return 0

    def can_open_position(self, symbol: str, price: float, date: datetime) -> Decision:
        """Entry gate. Checks run in order and the first failure wins."""
        s = self._settings
        day = _utc(date).date()

        if self._daily_loss_limit_reached:
            if day != self._last_trade_day:
                self._start_day(day)
            else:
                return Decision(False, "Daily loss limit reached")

        if self.open_positions_count() >= s.max_open_positions:
            return Decision(False, f"Max open positions limit reached ({s.max_open_positions})")

        pos = self._positions.get(symbol)
        position_value = (pos.shares if pos else 0) * price
        max_value = self.total_value({symbol: price}) * s.max_position_size_percentage / 100
        if position_value >= max_value:
            return Decision(False, f"Position size limit reached for {symbol}")

        if not self.is_within_trading_window(date):
            return Decision(False, "Outside trading window")

        return Decision(True)

    def is_within_trading_window(self, date: datetime) -> bool:
        """Trading-day membership, plus UTC session hours unless extended hours are on."""
        s = self._settings
        ts = _utc(date)
        if WEEKDAYS[ts.weekday()] not in s.trading_days:
            return False
        if s.extended_hours:
            return True
        minute_of_day = ts.hour * 60 + ts.minute
        return (
            _clock_minutes(s.trading_hours_start)
            <= minute_of_day
            <= _clock_minutes(s.trading_hours_end)
        )

    def check_stop_loss_take_profit(self, symbol: str, price: float) -> ExitReason | None:
        """Exit trigger for the open position, if any.

        Stop-loss and take-profit are measured against the entry price. The
        trailing high-water mark is raised before the trailing check.
        """
        pos = self._positions.get(symbol)
        if pos is None or not pos.is_open:
            return None
        s = self._settings

        entry = pos.entry_price or pos.avg_price
        if entry > 0:
            pnl_pct = (price - entry) / entry * 100
            if s.stop_loss_percentage and pnl_pct <= -s.stop_loss_percentage:
                return ExitReason.STOP_LOSS
            if s.take_profit_percentage and pnl_pct >= s.take_profit_percentage:
                return ExitReason.TAKE_PROFIT

        if s.trailing_stop_percentage:
            if pos.highest_price_since_entry is None or price > pos.highest_price_since_entry:
                pos.highest_price_since_entry = price
            stop_level = pos.highest_price_since_entry * (1 - s.trailing_stop_percentage / 100)
            if price <= stop_level:
                return ExitReason.TRAILING_STOP

        return None

    # -- settlement ----------------------------------------------------------

    def buy(
        self,
        symbol: str,
        price: float,
        date: datetime,
        quantity: int | None = None,
        commission: float = 0.0,
    ) -> SettlementResult:
        """Settle a filled buy. Sizes the order when *quantity* is omitted."""
        if not math.isfinite(price) or price <= 0:
            return SettlementResult(False, reason="Invalid price")
        qty = quantity if quantity is not None else self.calculate_position_size(symbol, price)
        if qty <= 0:
            return SettlementResult(False, reason="Position size calculation returned 0")

        cost = price * qty + commission
        if self._cash < cost:
            return SettlementResult(False, reason="Insufficient cash")

        pos = self._positions.setdefault(symbol, Position(symbol=symbol))
        pos.avg_price = (pos.avg_price * pos.shares + price * qty) / (pos.shares + qty)
        pos.shares += qty
        pos.entry_price = price
        pos.entry_date = date
        pos.highest_price_since_entry = price

        self._cash -= cost
        self._last_trade_day = _utc(date).date()
        logger.debug("BUY %s x%d @ %.4f (cash %.2f)", symbol, qty, price, self._cash)
        return SettlementResult(True, quantity=qty)

    def sell(
        self,
        symbol: str,
        price: float,
        date: datetime,
        quantity: int | None = None,
        commission: float = 0.0,
    ) -> SettlementResult:
        """Settle a filled sell. Sells the whole position when *quantity* is omitted."""
        pos = self._positions.get(symbol)
        if pos is None or not pos.is_open:
            return SettlementResult(False, reason="No open position")
        if not math.isfinite(price) or price <= 0:
            return SettlementResult(False, reason="Invalid price")

        qty = pos.shares if quantity is None else min(quantity, pos.shares)
        if qty <= 0:
            return SettlementResult(False, reason="Sell quantity must be positive")
        entry = pos.entry_price or pos.avg_price
        pnl = (price - entry) * qty - commission

        pos.shares -= qty
        if pos.shares == 0:
            pos.clear()

        self._cash += price * qty - commission
        self._total_pnl += pnl
        self._daily_pnl += pnl
        self._last_trade_day = _utc(date).date()
        self._check_daily_loss()
        logger.debug("SELL %s x%d @ %.4f pnl=%.2f", symbol, qty, price, pnl)
        return SettlementResult(True, quantity=qty, pnl=pnl)

    def reset_daily_pnl(self, date: datetime) -> None:
        """Start a new P&L day when *date* falls on a different calendar day."""
        day = _utc(date).date()
        if day != self._last_trade_day:
            self._start_day(day)

    def _start_day(self, day: date_type) -> None:
        self._daily_pnl = 0.0
        self._daily_loss_limit_reached = False
        self._last_trade_day = day

    def _check_daily_loss(self) -> None:
        s = self._settings
        magnitude = abs(self._daily_pnl)
        pct_hit = (
            s.max_daily_loss_percentage is not None
            and magnitude / self._initial_capital * 100 >= s.max_daily_loss_percentage
        )
        abs_hit = s.max_daily_loss_absolute is not None and magnitude >= s.max_daily_loss_absolute
        if (pct_hit or abs_hit) and not self._daily_loss_limit_reached:
            self._daily_loss_limit_reached = True
            logger.info("Daily loss limit reached (daily P&L %.2f); entries paused", self._daily_pnl)
