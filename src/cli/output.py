"""
Human-readable backtest output for the terminal.

Every CLI command uses these formatters. Journal receives the same data.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Mapping

if TYPE_CHECKING:
    from backtest.runner import BacktestResult
    from config.session_settings import TradingSessionSettings
    from strategy_core.contracts import Trade


def _fmt_pct(value: float | None) -> str:
    return "off" if value is None else f"{value:g}%"


def _fmt_indicators(indicators: Mapping[str, Any]) -> str:
    parts = []
    for key, value in indicators.items():
        if isinstance(value, float):
            parts.append(f"{key}={value:.4f}")
        elif value is not None:
            parts.append(f"{key}={value}")
    return "  ".join(parts)


def format_trade(index: int, trade: Trade) -> list[str]:
    """One trade as two or three indented lines."""
    lines = [
        f"  Trade #{index}: {trade.action:<4} {trade.shares} @ {trade.price:.2f}  {trade.date.isoformat()}",
    ]
    detail = f"            commission ${trade.commission:.2f} | slippage ${trade.slippage:.2f}"
    if trade.pnl is not None:
        detail += f" | PnL ${trade.pnl:+.2f}"
    if trade.reason:
        detail += f" | exit: {trade.reason}"
    lines.append(detail)
    if trade.indicators:
        lines.append(f"            {_fmt_indicators(trade.indicators)}")
    return lines


def format_backtest_summary(result: BacktestResult, description: str = "") -> str:
    """Format backtest result summary."""
    history = result.portfolio_history
    lines = [f"=== Backtest: {result.symbol} {result.strategy} ==="]
    if description:
        lines.append(f"Strategy     : {description}")
    if history:
        lines.append(f"Period       : {history[0].date.isoformat()} -> {history[-1].date.isoformat()}")
    lines.extend([
        f"Initial cash : ${result.initial_capital:,.2f}",
        f"Final value  : ${result.final_portfolio_value:,.2f}",
        f"Return       : {result.total_return * 100:+.2f}%",
        f"Max drawdown : {result.max_drawdown * 100:.2f}%",
        f"Trades       : {len(result.trades)} (buys {result.buy_count} / sells {result.sell_count})",
        f"Win rate     : {result.win_rate * 100:.1f}% ({result.winning_trades}/{result.closed_trades} closed)",
    ])
    if result.trades:
        lines.append("")
        for i, t in enumerate(result.trades, 1):
            lines.extend(format_trade(i, t))
    lines.append("===")
    return "\n".join(lines)


def format_strategies(strategies: Mapping[str, Mapping[str, Any]]) -> str:
    """List registered strategies with their default parameters."""
    lines = ["=== Strategies ==="]
    for name, defaults in strategies.items():
        params = ", ".join(f"{k}={v}" for k, v in defaults.items()) or "(no defaults)"
        lines.append(f"  {name:<26} {params}")
    lines.append("===")
    return "\n".join(lines)


def format_settings(settings: TradingSessionSettings) -> str:
    """Session settings grouped the way the portfolio applies them."""
    s = settings
    hours = "extended" if s.extended_hours else f"{s.trading_hours_start}-{s.trading_hours_end} UTC"
    lines = [
        "=== Session Settings ===",
        f"Stop loss    : {_fmt_pct(s.stop_loss_percentage)}",
        f"Take profit  : {_fmt_pct(s.take_profit_percentage)}",
        f"Trailing stop: {_fmt_pct(s.trailing_stop_percentage)}",
        f"Daily loss   : {_fmt_pct(s.max_daily_loss_percentage)}"
        + (f" / ${s.max_daily_loss_absolute:,.2f}" if s.max_daily_loss_absolute is not None else ""),
        f"Sizing       : {s.position_sizing_method} {s.position_size_value:g}"
        f" (max {s.max_position_size_percentage:g}% per symbol, {s.max_open_positions} open)",
        f"Orders       : {s.order_type_default} / {s.time_in_force}"
        f" (partial fills {'on' if s.allow_partial_fills else 'off'})",
        f"Costs        : commission {s.commission_rate:g}% | slippage {s.slippage_model} {s.slippage_value:g}%",
        f"Window       : {','.join(s.trading_days) or '(none)'} {hours}",
        "===",
    ]
    return "\n".join(lines)
