"""
Structured JSON event logger for backtest runs.

Emits one JSON object per line to stderr so run events can be parsed by
log aggregators alongside the human-readable CLI output.
"""

from __future__ import annotations

import json
import sys
from datetime import datetime, timezone
from typing import Any


class StructuredEventLogger:
    """Emit structured JSON events to a stream (stderr by default)."""

    def __init__(
        self,
        symbol: str,
        *,
        enabled: bool = True,
        stream: Any = None,
    ) -> None:
        self._symbol = symbol
        self._enabled = enabled
        self._stream = stream or sys.stderr

    def _emit(self, event_type: str, **fields: Any) -> dict:
        record = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "event": event_type,
            "symbol": self._symbol,
            **fields,
        }
        if self._enabled:
            self._stream.write(json.dumps(record) + "\n")
            self._stream.flush()
        return record

    def run_start(self, strategy: str, bars: int, initial_capital: float) -> dict:
        return self._emit(
            "run_start",
            strategy=strategy,
            bars=bars,
            initial_capital=initial_capital,
        )

    def trade_executed(
        self,
        action: str,
        shares: int,
        price: float,
        date: str,
        pnl: float | None = None,
    ) -> dict:
        return self._emit(
            "trade_executed",
            action=action,
            shares=shares,
            price=price,
            date=date,
            pnl=pnl,
        )

    def order_rejected(self, side: str, reason: str, date: str = "") -> dict:
        return self._emit("order_rejected", side=side, reason=reason, date=date)

    def risk_exit(self, reason: str, shares: int, price: float, date: str) -> dict:
        return self._emit(
            "risk_exit",
            reason=reason,
            shares=shares,
            price=price,
            date=date,
        )

    def run_complete(
        self,
        trades: int,
        final_portfolio_value: float,
        total_return: float,
        max_drawdown: float,
    ) -> dict:
        return self._emit(
            "run_complete",
            trades=trades,
            final_portfolio_value=round(final_portfolio_value, 2),
            total_return=round(total_return, 6),
            max_drawdown=round(max_drawdown, 6),
        )

    def error(self, message: str, detail: str = "") -> dict:
        return self._emit("error", message=message, detail=detail)
