"""
strategy-core: incremental signal generators.

No I/O, no network, no side effects. Consumes prices (and volumes),
produces BUY/SELL signals. Every update is O(1) per bar.
"""

from strategy_core.base import SignalGenerator, StrategyConfigError
from strategy_core.bollinger_bands import BollingerBandsStrategy
from strategy_core.breakout import BreakoutStrategy
from strategy_core.contracts import ExitReason, MAType, PositionState, PriceBar, Signal, Trade
from strategy_core.custom import CustomStrategy
from strategy_core.ma_crossover import MovingAverageCrossoverStrategy
from strategy_core.mean_reversion import MeanReversionStrategy
from strategy_core.momentum import MomentumStrategy
from strategy_core.registry import (
    available_strategies,
    build_strategy,
    register_strategy,
    unregister_strategy,
)

__all__ = [
    "available_strategies",
    "BollingerBandsStrategy",
    "BreakoutStrategy",
    "build_strategy",
    "CustomStrategy",
    "ExitReason",
    "MAType",
    "MeanReversionStrategy",
    "MomentumStrategy",
    "MovingAverageCrossoverStrategy",
    "PositionState",
    "PriceBar",
    "register_strategy",
    "Signal",
    "SignalGenerator",
    "StrategyConfigError",
    "Trade",
    "unregister_strategy",
]
