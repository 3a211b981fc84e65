"""pricerelay.cli – Typer-powered command-line interface.

Commands
--------
* ``serve``   – run the upstream feed and the subscriber WebSocket endpoint.
* ``stream``  – run the upstream feed and print every price update as JSON.
* ``candles`` – aggregate a JSON-lines tick file into OHLCV candles.
"""

from __future__ import annotations

import dataclasses
import logging
from pathlib import Path
from typing import List, Optional

import anyio
import typer
from dotenv import find_dotenv, load_dotenv
from rich.console import Console
from rich.table import Table

from .aggregator import aggregate
from .decoder import decode_tick_line
from .events import Tick
from .exceptions import InvalidMessageError
from .intervals import to_millis
from .json_utils import to_json
from .logging_utils import configure_logging
from .server import serve_subscribers
from .service import PriceRelay
from .settings import Settings, load_settings

app = typer.Typer(add_completion=False, pretty_exceptions_enable=False)

logger = logging.getLogger(__name__)


@app.callback()
def main(
    debug: bool = typer.Option(False, "-d", "--debug", help="Log at TRACE level"),
    env_file: Optional[Path] = typer.Option(
        None, "--env-file", help="Read settings from this .env file (default: ./.env)"
    ),
) -> None:
    """Relay a live price stream to WebSocket subscribers."""

    load_dotenv(env_file or find_dotenv(usecwd=True))
    if debug:
        configure_logging(debug=True)


def _settings(**overrides: object) -> Settings:
    try:
        settings = load_settings()
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    changes = {k: v for k, v in overrides.items() if v is not None}
    return dataclasses.replace(settings, **changes)


class _EchoConnection:
    """Hub subscriber that writes every message to stdout."""

    def __init__(self, limit: int, scope: anyio.CancelScope) -> None:
        self._limit = limit
        self._scope = scope
        self.sent = 0

    async def send(self, message: str) -> None:
        typer.echo(message)
        self.sent += 1
        if self._limit and self.sent >= self._limit:
            self._scope.cancel()


async def _serve(settings: Settings) -> None:
    async with PriceRelay(settings) as relay:
        await serve_subscribers(relay.hub, settings.host, settings.port)


async def _stream(settings: Settings, limit: int) -> None:
    async with PriceRelay(settings) as relay:
        with anyio.CancelScope() as scope:
            handle = relay.hub.subscribe(_EchoConnection(limit, scope))
            await relay.hub.serve(handle)


@app.command()
def serve(
    symbol: Optional[str] = typer.Option(None, "-s", "--symbol", help="Upstream symbol"),
    host: Optional[str] = typer.Option(None, "--host", help="Subscriber endpoint host"),
    port: Optional[int] = typer.Option(None, "-p", "--port", help="Subscriber endpoint port"),
) -> None:
    """Relay the upstream feed to WebSocket subscribers until interrupted."""

    settings = _settings(symbol=symbol, host=host, port=port)
    try:
        anyio.run(_serve, settings, backend="asyncio")
    except KeyboardInterrupt:
        logger.info("interrupted, shutting down", extra={"code_path": f"{__name__}.serve"})


@app.command()
def stream(
    symbol: Optional[str] = typer.Option(None, "-s", "--symbol", help="Upstream symbol"),
    limit: int = typer.Option(0, "-n", "--limit", min=0, help="Stop after N updates (0 = never)"),
) -> None:
    """Print live price updates to stdout in JSON lines format."""

    settings = _settings(symbol=symbol)
    try:
        anyio.run(_stream, settings, limit, backend="asyncio")
    except KeyboardInterrupt:
        logger.info("interrupted, shutting down", extra={"code_path": f"{__name__}.stream"})


def _read_ticks(path: Path) -> List[Tick]:
    ticks: List[Tick] = []
    with path.open(encoding="utf-8") as fp:
        for lineno, line in enumerate(fp, start=1):
            if not line.strip():
                continue
            try:
                ticks.append(decode_tick_line(line))
            except InvalidMessageError as exc:
                logger.warning(
                    "%s:%d skipped: %s",
                    path,
                    lineno,
                    exc,
                    extra={"code_path": f"{__name__}._read_ticks"},
                )
    return ticks


@app.command()
def candles(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON-lines tick file"),
    interval: str = typer.Option("1m", "-i", "--interval", help="Candle width (30s, 1m, 1h ...)"),
    start: Optional[int] = typer.Option(None, "--start", help="Window start (epoch ms)"),
    end: Optional[int] = typer.Option(None, "--end", help="Window end, exclusive (epoch ms)"),
    table: bool = typer.Option(False, "--table", help="Render a table instead of JSON lines"),
) -> None:
    """Aggregate ticks (``{"price", "volume", "timestamp"}`` per line) into candles."""

    try:
        interval_ms = to_millis(interval)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--interval") from exc

    ticks = _read_ticks(path)
    if not ticks:
        return
    if start is None:
        first = min(t.timestamp_ms for t in ticks)
        start = first - first % interval_ms
    if end is None:
        end = max(t.timestamp_ms for t in ticks) + 1

    result = aggregate(ticks, interval_ms, start, end)
    if not table:
        for candle in result:
            typer.echo(to_json(candle.to_dict()))
        return

    grid = Table("timestamp", "open", "high", "low", "close", "volume")
    for candle in result:
        grid.add_row(
            candle.ts_open.isoformat(),
            *(str(v) for v in (candle.open, candle.high, candle.low, candle.close, candle.volume)),
        )
    Console().print(grid)


def run() -> None:  # entrypoint wrapper for the console script
    """Console-script entrypoint for the ``pricerelay`` command."""

    app()
