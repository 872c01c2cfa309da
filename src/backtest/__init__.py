"""
Backtest engine: replay bars, call strategy-core, simulate fills, risk, metrics.
"""

from backtest.portfolio import Decision, Portfolio, PortfolioStatus, Position, SettlementResult
from backtest.runner import BacktestResult, PortfolioSnapshot, run_backtest, run_strategy

__all__ = [
    "BacktestResult",
    "Decision",
    "Portfolio",
    "PortfolioSnapshot",
    "PortfolioStatus",
    "Position",
    "SettlementResult",
    "run_backtest",
    "run_strategy",
]
