"""Append-only JSONL journal of backtest runs."""

from journal.writer import JournalWriter

__all__ = ["JournalWriter"]
