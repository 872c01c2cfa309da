"""
Load price bars from CSV. Timestamps normalized to UTC.

Expected header: date,open,close[,volume]. Extra columns are ignored.
Rows are returned in file order; ordering is the caller's responsibility.
"""

import csv
import logging
from datetime import datetime, timezone
from pathlib import Path

from strategy_core.contracts import PriceBar

logger = logging.getLogger("backtester.data")

REQUIRED_COLUMNS = ("date", "open", "close")


class BarFileError(ValueError):
    """Raised when a bar file is missing or malformed."""


def _utc_ts(ts: datetime) -> datetime:
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def parse_date(value: str) -> datetime:
    """ISO date or datetime; a trailing 'Z' means UTC."""
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return _utc_ts(datetime.fromisoformat(text))


def _parse_volume(value: str | None) -> float | None:
    if value is None or not value.strip():
        return None
    return float(value)


def load_bars(path: str | Path) -> list[PriceBar]:
    """Read bars from a CSV file."""
    bar_path = Path(path)
    if not bar_path.exists():
        raise BarFileError(f"Bar file not found: {bar_path}")

    bars: list[PriceBar] = []
    with open(bar_path, newline="") as f:
        reader = csv.DictReader(f)
        header = [c.strip().lower() for c in (reader.fieldnames or [])]
        missing = [c for c in REQUIRED_COLUMNS if c not in header]
        if missing:
            raise BarFileError(f"{bar_path.name} is missing column(s): {', '.join(missing)}")
        reader.fieldnames = header

        for line_no, row in enumerate(reader, start=2):
            try:
                bars.append(
                    PriceBar(
                        date=parse_date(row["date"]),
                        open=float(row["open"]),
                        close=float(row["close"]),
                        volume=_parse_volume(row.get("volume")),
                    )
                )
            except (TypeError, ValueError) as exc:
                raise BarFileError(f"{bar_path.name} line {line_no}: {exc}") from exc

    logger.info("Loaded %d bars from %s", len(bars), bar_path.name)
    return bars


def filter_bars(
    bars: list[PriceBar], start: datetime | None = None, end: datetime | None = None
) -> list[PriceBar]:
    """Bars with start <= date <= end; either bound may be omitted."""
    if start is not None and end is not None and start > end:
        raise BarFileError(f"start ({start.isoformat()}) is after end ({end.isoformat()})")
    return [
        b for b in bars
        if (start is None or _utc_ts(b.date) >= start) and (end is None or _utc_ts(b.date) <= end)
    ]


def write_bars(path: str | Path, bars: list[PriceBar]) -> None:
    """Write bars as CSV with the header load_bars expects (fixtures and round-trips)."""
    bar_path = Path(path)
    bar_path.parent.mkdir(parents=True, exist_ok=True)
    with open(bar_path, "w", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(["date", "open", "close", "volume"])
        for b in bars:
            writer.writerow([
                _utc_ts(b.date).isoformat(),
                b.open,
                b.close,
                "" if b.volume is None else b.volume,
            ])
