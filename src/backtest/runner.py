"""
Bar-by-bar backtest: replay closes through a signal generator, gate and size
entries in the portfolio, fill through the execution simulator, record trades.

Sequential and deterministic. Fresh portfolio and simulator per run (built
by injected factories), so identical inputs give identical results.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Mapping, Sequence

from backtest.portfolio import Portfolio
from config.session_settings import TradingSessionSettings, resolve_settings
from execution.models import BUY, SELL, OrderRequest
from execution.order_simulator import OrderExecutionSimulator
from strategy_core.base import SignalGenerator, is_usable_price
from strategy_core.contracts import PriceBar, Signal, Trade
from strategy_core.registry import build_strategy

logger = logging.getLogger("backtester.runner")

PortfolioFactory = Callable[[float, TradingSessionSettings, str], Portfolio]
SimulatorFactory = Callable[[TradingSessionSettings], OrderExecutionSimulator]
JournalCallback = Callable[[str, dict], None]


@dataclass(frozen=True)
class PortfolioSnapshot:
    """Portfolio state at one bar's close."""

    date: datetime
    value: float
    cash: float
    shares: int
    price: float
    peak: float
    drawdown: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "value": self.value,
            "cash": self.cash,
            "shares": self.shares,
            "price": self.price,
            "peak": self.peak,
            "drawdown": self.drawdown,
        }


@dataclass
class BacktestResult:
    """Result of a backtest run."""

    symbol: str
    strategy: str
    initial_capital: float
    final_portfolio_value: float
    trades: list[Trade] = field(default_factory=list)
    portfolio_history: list[PortfolioSnapshot] = field(default_factory=list)
    max_drawdown: float = 0.0
    closed_trades: int = 0
    winning_trades: int = 0

    @property
    def total_return(self) -> float:
        """Fractional return: final / initial - 1."""
        if self.initial_capital <= 0:
            return 0.0
        return self.final_portfolio_value / self.initial_capital - 1

    @property
    def win_rate(self) -> float:
        if self.closed_trades == 0:
            return 0.0
        return self.winning_trades / self.closed_trades

    @property
    def buy_count(self) -> int:
        return sum(1 for t in self.trades if t.action == BUY)

    @property
    def sell_count(self) -> int:
        return sum(1 for t in self.trades if t.action == SELL)

    def to_dict(self) -> dict[str, Any]:
        return {
            "symbol": self.symbol,
            "strategy": self.strategy,
            "initial_capital": self.initial_capital,
            "final_portfolio_value": self.final_portfolio_value,
            "total_return": self.total_return,
            "win_rate": self.win_rate,
            "max_drawdown": self.max_drawdown,
            "closed_trades": self.closed_trades,
            "winning_trades": self.winning_trades,
            "trades": [t.to_dict() for t in self.trades],
            "portfolio_history": [s.to_dict() for s in self.portfolio_history],
        }


def _default_portfolio(
    initial_capital: float, settings: TradingSessionSettings, symbol: str
) -> Portfolio:
    return Portfolio(initial_capital, settings, symbols=[symbol])


def _entry_prices(
    settings: TradingSessionSettings, side: str, close: float
) -> tuple[float | None, float | None]:
    """Limit and stop prices for a signal-driven order of the default type."""
    otype = settings.order_type_default
    limit_price = stop_price = None
    if otype in ("limit", "stop_limit"):
        offset = (settings.limit_price_offset_percentage or 0.0) / 100
        limit_price = close * (1 - offset) if side == BUY else close * (1 + offset)
    if otype in ("stop", "stop_limit"):
        stop_price = close
    return limit_price, stop_price


def run_backtest(
    bars: Sequence[PriceBar],
    symbol: str,
    strategy: SignalGenerator,
    *,
    initial_capital: float = 10_000.0,
    settings: TradingSessionSettings | Mapping[str, Any] | None = None,
    portfolio_factory: PortfolioFactory | None = None,
    simulator_factory: SimulatorFactory | None = None,
    journal_callback: JournalCallback | None = None,
) -> BacktestResult:
    """Replay *bars* through *strategy* and the risk/execution stack.

    Parameters
    ----------
    bars:
        Chronological price history for one symbol. Order is assumed.
    symbol:
        Ticker symbol.
    strategy:
        Signal generator; reset before the first bar.
    initial_capital:
        Starting cash. Must be positive.
    settings:
        Session settings, or a mapping of overrides. ``None`` uses the
        documented default.
    portfolio_factory, simulator_factory:
        Builders for the per-run portfolio and execution simulator.
    journal_callback:
        Optional ``callback(event, payload)`` receiving ``entry``, ``exit``
        and ``rejected`` events.

    Raises
    ------
    ValueError
        Non-positive initial capital.
    SessionSettingsError
        Invalid settings overrides.
    """
    if not math.isfinite(initial_capital) or initial_capital <= 0:
        raise ValueError(f"initial_capital must be positive, got {initial_capital}")
    settings = resolve_settings(settings)

    strategy.reset()
    portfolio = (portfolio_factory or _default_portfolio)(initial_capital, settings, symbol)
    simulator = (simulator_factory or OrderExecutionSimulator)(settings)

    trades: list[Trade] = []
    history: list[PortfolioSnapshot] = []
    closed_trades = 0
    winning_trades = 0
    peak = float(initial_capital)
    max_drawdown = 0.0

    def _emit(event: str, payload: dict) -> None:
        if journal_callback:
            journal_callback(event, payload)

    def _reject(bar: PriceBar, side: str, reason: str, exit_reason: str | None = None) -> None:
        logger.info("%s %s rejected on %s: %s", side, symbol, bar.date.isoformat(), reason)
        payload = {"symbol": symbol, "date": bar.date.isoformat(), "side": side, "reason": reason}
        if exit_reason:
            payload["exit_reason"] = exit_reason
        _emit("rejected", payload)

    def _close(bar: PriceBar, order_type: str, limit_price: float | None,
               stop_price: float | None, exit_reason: str | None) -> None:
        nonlocal closed_trades, winning_trades
        position = portfolio.get_position(symbol)
        order = OrderRequest(
            symbol=symbol,
            side=SELL,
            quantity=position.shares,
            order_type=order_type,
            current_price=bar.close,
            timestamp=bar.date,
            limit_price=limit_price,
            stop_price=stop_price,
            volume=bar.volume,
        )
        execution = simulator.execute_order(order)
        if not execution.executed:
            _reject(bar, SELL, execution.reason or "Order not executed", exit_reason)
            return
        settled = portfolio.sell(
            symbol, execution.executed_price, bar.date,
            execution.executed_quantity, execution.commission,
        )
        if not settled.success:
            _reject(bar, SELL, settled.reason or "Settlement failed", exit_reason)
            return

        trade = Trade(
            symbol=symbol,
            date=bar.date,
            action=SELL,
            price=execution.executed_price,
            shares=settled.quantity,
            reason=exit_reason,
            commission=execution.commission,
            slippage=execution.slippage,
            pnl=settled.pnl,
            indicators=strategy.indicators(),
        )
        trades.append(trade)
        closed_trades += 1
        if settled.pnl > 0:
            winning_trades += 1
        _emit("exit", {"trade": trade, "reason": exit_reason or "SIGNAL"})

    # Last usable close; positions are marked here when a bar's close is unusable.
    mark_price: float | None = None

    for bar in bars:
        portfolio.reset_daily_pnl(bar.date)
        signal = strategy.add_price(bar.close, bar.volume)

        if is_usable_price(bar.close):
            mark_price = bar.close
            exit_reason = portfolio.check_stop_loss_take_profit(symbol, bar.close)
        else:
            logger.warning("Unusable close %r for %s on %s; bar skipped", bar.close, symbol, bar.date.isoformat())
            signal = None
            exit_reason = None

        # Forced exits go out as market orders ahead of any new entry.
        if exit_reason is not None and portfolio.get_position(symbol).is_open:
            _close(bar, "market", None, None, exit_reason.value)

        if signal == Signal.BUY:
            decision = portfolio.can_open_position(symbol, bar.close, bar.date)
            if not decision.allowed:
                _reject(bar, BUY, decision.reason or "Entry not allowed")
            else:
                quantity = portfolio.calculate_position_size(symbol, bar.close)
                if quantity <= 0:
                    _reject(bar, BUY, "Position size calculation returned 0")
                else:
                    limit_price, stop_price = _entry_prices(settings, BUY, bar.close)
                    order = OrderRequest(
                        symbol=symbol,
                        side=BUY,
                        quantity=quantity,
                        order_type=settings.order_type_default,
                        current_price=bar.close,
                        timestamp=bar.date,
                        limit_price=limit_price,
                        stop_price=stop_price,
                        volume=bar.volume,
                    )
                    execution = simulator.execute_order(order)
                    if not execution.executed:
                        _reject(bar, BUY, execution.reason or "Order not executed")
                    else:
                        settled = portfolio.buy(
                            symbol, execution.executed_price, bar.date,
                            execution.executed_quantity, execution.commission,
                        )
                        if not settled.success:
                            _reject(bar, BUY, settled.reason or "Settlement failed")
                        else:
                            trade = Trade(
                                symbol=symbol,
                                date=bar.date,
                                action=BUY,
                                price=execution.executed_price,
                                shares=settled.quantity,
                                commission=execution.commission,
                                slippage=execution.slippage,
                                indicators=strategy.indicators(),
                            )
                            trades.append(trade)
                            _emit("entry", {"trade": trade})

        elif signal == Signal.SELL and portfolio.get_position(symbol).is_open:
            limit_price, stop_price = _entry_prices(settings, SELL, bar.close)
            _close(bar, settings.order_type_default, limit_price, stop_price, None)

        status = portfolio.status({symbol: mark_price} if mark_price is not None else None)
        value = status.total_value
        peak = max(peak, value)
        drawdown = (peak - value) / peak if peak > 0 else 0.0
        max_drawdown = max(max_drawdown, drawdown)
        history.append(
            PortfolioSnapshot(
                date=bar.date,
                value=value,
                cash=status.cash,
                shares=status.positions.get(symbol, 0),
                price=mark_price if mark_price is not None else 0.0,
                peak=peak,
                drawdown=drawdown,
            )
        )

    if mark_price is not None:
        final_value = portfolio.total_value({symbol: mark_price})
    else:
        final_value = portfolio.total_value()

    result = BacktestResult(
        symbol=symbol,
        strategy=strategy.name,
        initial_capital=float(initial_capital),
        final_portfolio_value=final_value,
        trades=trades,
        portfolio_history=history,
        max_drawdown=max_drawdown,
        closed_trades=closed_trades,
        winning_trades=winning_trades,
    )
    logger.info(
        "Backtest %s/%s: %d bars, %d trades, return %.2f%%",
        symbol, strategy.name, len(bars), len(trades), result.total_return * 100,
    )
    return result


def run_strategy(
    name: str,
    params: Mapping[str, Any] | None,
    bars: Sequence[PriceBar],
    symbol: str,
    **kwargs: Any,
) -> BacktestResult:
    """Build the named strategy from the registry and run it.

    Keyword arguments are passed through to ``run_backtest``. Raises
    StrategyConfigError before any bar is processed when the strategy name
    or parameters are invalid.
    """
    strategy = build_strategy(name, params)
    return run_backtest(bars, symbol, strategy, **kwargs)
