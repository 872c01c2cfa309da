"""
Structured journal: append-only JSON lines, one per backtest event.

Events: run_start, trade, rejection, summary.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any


def _serialize(obj: Any) -> Any:
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    if hasattr(obj, "to_dict"):
        return _serialize(obj.to_dict())
    if hasattr(obj, "__dict__") and not isinstance(obj, type):
        return {k: _serialize(v) for k, v in vars(obj).items() if not k.startswith("_")}
    if isinstance(obj, dict):
        return {k: _serialize(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_serialize(x) for x in obj]
    return obj


class JournalWriter:
    """Append-only journal. Each line is a JSON object with event type and payload."""

    def __init__(self, path: str | Path, *, echo_stdout: bool = False) -> None:
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._echo = echo_stdout

    @property
    def path(self) -> Path:
        return self._path

    def _write(self, event_type: str, payload: dict) -> None:
        record = {"ts_utc": datetime.now(timezone.utc).isoformat(), "event": event_type, **payload}
        line = json.dumps(_serialize(record)) + "\n"
        with open(self._path, "a") as f:
            f.write(line)
        if self._echo:
            print(line.rstrip())

    def run_start(self, symbol: str, strategy: str, params: dict, bars: int, initial_capital: float, **extra: Any) -> None:
        self._write(
            "run_start",
            {"symbol": symbol, "strategy": strategy, "params": params, "bars": bars, "initial_capital": initial_capital, **extra},
        )

    def trade(self, trade: Any, **extra: Any) -> None:
        self._write("trade", {"trade": trade, **extra})

    def rejection(self, symbol: str, side: str, reason: str, **extra: Any) -> None:
        self._write("rejection", {"symbol": symbol, "side": side, "reason": reason, **extra})

    def summary(self, symbol: str, strategy: str, final_portfolio_value: float, total_return: float, win_rate: float, max_drawdown: float, trades: int, **extra: Any) -> None:
        self._write(
            "summary",
            {
                "symbol": symbol,
                "strategy": strategy,
                "final_portfolio_value": final_portfolio_value,
                "total_return": total_return,
                "win_rate": win_rate,
                "max_drawdown": max_drawdown,
                "trades": trades,
                **extra,
            },
        )
