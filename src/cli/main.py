"""
CLI entry point: backtester backtest | strategies | check-settings.

Commands read defaults from --config (config.yaml when present), print a
human-readable summary, and log to the journal.
"""

import json
import logging
import sys
from datetime import datetime, timedelta
from pathlib import Path

import click
import yaml
from dotenv import load_dotenv

from config import AppConfig, load_config, parse_config

load_dotenv()

logger = logging.getLogger("backtester")

DEFAULT_CONFIG_PATH = "config.yaml"


def _setup_logging() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s  %(message)s",
        stream=sys.stderr,
    )


def _load_app_config(config_path: str | None) -> AppConfig:
    """Explicit paths must exist; a missing default config.yaml means built-in defaults."""
    if config_path:
        return load_config(config_path)
    if Path(DEFAULT_CONFIG_PATH).exists():
        return load_config(DEFAULT_CONFIG_PATH)
    logger.info("No %s found; using built-in defaults", DEFAULT_CONFIG_PATH)
    return parse_config({})


def _parse_params(pairs: tuple[str, ...]) -> dict:
    """``key=value`` pairs; values are read as YAML scalars (20 -> int, 0.05 -> float)."""
    params = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            raise click.BadParameter(f"expected key=value, got {pair!r}", param_hint="--param")
        params[key.strip()] = yaml.safe_load(value) if value.strip() else None
    return params


def _parse_bound(value: str | None, option: str, *, end: bool = False) -> datetime | None:
    """ISO date or datetime (UTC); a bare --end date covers that whole day."""
    if value is None:
        return None
    from data.bar_file import parse_date

    try:
        ts = parse_date(value)
    except ValueError as exc:
        raise click.BadParameter(f"not an ISO date: {value!r}", param_hint=option) from exc
    if end and len(value.strip()) == 10:
        ts += timedelta(days=1) - timedelta(microseconds=1)
    return ts


@click.group()
@click.option(
    "--config", "config_path", default=None, envvar="BACKTESTER_CONFIG",
    help="Path to config file (default: config.yaml when present).",
)
@click.pass_context
def cli(ctx: click.Context, config_path: str | None) -> None:
    """backtester: replay trading strategies over historical prices."""
    _setup_logging()
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


# ---------- backtester backtest ----------


@cli.command()
@click.option("--bars", "bars_path", default=None, help="CSV of date,open,close[,volume]. Defaults to config data.bars_path.")
@click.option("--symbol", default=None, help="Ticker symbol. Defaults to config symbol.")
@click.option("--strategy", "strategy_name", default=None, help="Strategy name (see 'backtester strategies').")
@click.option("--param", "param_pairs", multiple=True, help="Strategy parameter as key=value. Repeatable.")
@click.option("--start", "start_str", default=None, help="First bar date to replay (ISO, e.g. 2024-01-01).")
@click.option("--end", "end_str", default=None, help="Last bar date to replay (ISO, inclusive).")
@click.option("--capital", default=None, type=float, help="Initial capital.")
@click.option("--settings", "settings_path", default=None, help="Session settings file (JSON or YAML).")
@click.option("--json-out", "json_out", default=None, help="Write the full result as JSON to this path.")
@click.pass_context
def backtest(
    ctx: click.Context,
    bars_path: str | None,
    symbol: str | None,
    strategy_name: str | None,
    param_pairs: tuple[str, ...],
    start_str: str | None,
    end_str: str | None,
    capital: float | None,
    settings_path: str | None,
    json_out: str | None,
) -> None:
    """Run a strategy over a bar file and print every trade."""
    cfg = _load_app_config(ctx.obj["config_path"])
    from backtest import run_backtest
    from cli.output import format_backtest_summary
    from cli.structured_log import StructuredEventLogger
    from config.session_settings import load_session_settings, resolve_settings
    from data.bar_file import filter_bars, load_bars
    from journal import JournalWriter
    from strategy_core import build_strategy

    symbol = symbol or cfg.symbol
    name = strategy_name or cfg.strategy.name
    if strategy_name and strategy_name != cfg.strategy.name:
        params = {}
    else:
        params = dict(cfg.strategy.params)
    params.update(_parse_params(param_pairs))
    initial_capital = capital if capital is not None else cfg.backtest.initial_capital
    since = _parse_bound(start_str, "--start")
    until = _parse_bound(end_str, "--end", end=True)

    events = StructuredEventLogger(symbol, enabled=cfg.alerting.structured_logs)

    try:
        strategy = build_strategy(name, params)
        session_file = settings_path or cfg.session.settings_path
        if session_file:
            settings = load_session_settings(session_file)
        else:
            settings = resolve_settings(cfg.session.overrides)
        bars = load_bars(bars_path or cfg.data.bars_path)
        if since or until:
            bars = filter_bars(bars, since, until)
    except ValueError as exc:
        events.error("configuration error", detail=str(exc))
        raise click.ClickException(str(exc)) from exc

    if not bars:
        click.echo("Bar file holds no bars; nothing to replay.")

    journal = JournalWriter(cfg.journal.path, echo_stdout=cfg.journal.echo_stdout)
    journal.run_start(symbol, strategy.name, params, len(bars), initial_capital)
    events.run_start(strategy.name, len(bars), initial_capital)

    def on_event(event_type: str, payload: dict) -> None:
        if event_type in ("entry", "exit"):
            t = payload["trade"]
            journal.trade(t)
            if t.reason:
                events.risk_exit(t.reason, t.shares, t.price, t.date.isoformat())
            events.trade_executed(t.action, t.shares, t.price, t.date.isoformat(), pnl=t.pnl)
        elif event_type == "rejected":
            extra = {k: v for k, v in payload.items() if k not in ("symbol", "side", "reason")}
            journal.rejection(payload["symbol"], payload["side"], payload["reason"], **extra)
            events.order_rejected(payload["side"], payload["reason"], date=payload.get("date", ""))

    click.echo(f"Running backtest: {symbol} {strategy.name}, {len(bars)} bars ...")
    result = run_backtest(
        bars,
        symbol,
        strategy,
        initial_capital=initial_capital,
        settings=settings,
        journal_callback=on_event,
    )

    journal.summary(
        symbol,
        result.strategy,
        result.final_portfolio_value,
        result.total_return,
        result.win_rate,
        result.max_drawdown,
        len(result.trades),
    )
    events.run_complete(
        len(result.trades), result.final_portfolio_value, result.total_return, result.max_drawdown
    )
    click.echo(format_backtest_summary(result, strategy.describe()))

    if json_out:
        out_path = Path(json_out)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_text(json.dumps(result.to_dict(), indent=2) + "\n")
        click.echo(f"Result written to {out_path}")


# ---------- backtester strategies ----------


@cli.command()
def strategies() -> None:
    """List registered strategies and their default parameters."""
    from cli.output import format_strategies
    from strategy_core import available_strategies

    click.echo(format_strategies(available_strategies()))


# ---------- backtester check-settings ----------


@cli.command("check-settings")
@click.argument("path", type=click.Path(dir_okay=False))
def check_settings(path: str) -> None:
    """Validate a session settings file and show the resolved values.

    Exit code 0 = valid, 1 = invalid.
    """
    from cli.output import format_settings
    from config.session_settings import SessionSettingsError, load_session_settings

    try:
        settings = load_session_settings(path)
    except SessionSettingsError as exc:
        click.echo(f"  [FAIL] {exc}")
        raise SystemExit(1)

    click.echo(format_settings(settings))
    click.echo("\nSettings: VALID")


if __name__ == "__main__":
    cli()
