"""
Data input: read price bars from CSV, normalize to UTC.

Depends on strategy_core.contracts for PriceBar; no dependency from strategy_core back to data.
"""

from data.bar_file import BarFileError, filter_bars, load_bars, write_bars

__all__ = [
    "BarFileError",
    "filter_bars",
    "load_bars",
    "write_bars",
]
