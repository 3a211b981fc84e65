"""The relay service object: buffer, hub and feed wired together."""

from __future__ import annotations

import logging
import time
from typing import Callable, List, Optional

import anyio
import anyio.abc
import websockets

from .aggregator import aggregate
from .events import PriceHistoryBuffer, Tick
from .feed import Connector, Sleeper, UpstreamFeedClient
from .hub import BroadcastHub
from .logging_utils import trace
from .models import Candle
from .settings import Settings

__all__ = ["PriceRelay"]

logger = logging.getLogger(__name__)

Clock = Callable[[], int]


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


def _websocket_connector(url: str) -> Connector:
    return lambda: websockets.connect(url)


class PriceRelay:
    """Own the price history, the subscriber hub and the upstream feed.

    ``async with PriceRelay(settings) as relay`` starts the feed in a task
    group; leaving the block cancels it and disconnects every subscriber.
    The read side, :meth:`get_latest_price` and :meth:`get_candles`, is safe
    to call from any task or thread while the feed runs.

    Example
    -------
    >>> async with PriceRelay(load_settings()) as relay:
    ...     await anyio.sleep(60)
    ...     print(relay.get_candles())
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        connect: Connector | None = None,
        clock: Clock = _now_ms,
        sleep: Sleeper = anyio.sleep,
    ) -> None:
        self._settings = settings or Settings()
        self._clock = clock
        self._buffer = PriceHistoryBuffer(self._settings.buffer_capacity)
        self._hub = BroadcastHub(self._buffer, maxsize=self._settings.subscriber_queue)
        self._feed = UpstreamFeedClient(
            connect or _websocket_connector(self._settings.upstream_url),
            self._settings.symbol,
            self._buffer,
            self._hub,
            reconnect_delay=self._settings.reconnect_delay,
            sleep=sleep,
        )
        self._tg: anyio.abc.TaskGroup | None = None

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def buffer(self) -> PriceHistoryBuffer:
        return self._buffer

    @property
    def hub(self) -> BroadcastHub:
        """Broadcast hub for live price updates."""
        return self._hub

    @property
    def feed(self) -> UpstreamFeedClient:
        return self._feed

    async def __aenter__(self) -> "PriceRelay":
        if self._tg is not None:
            raise RuntimeError("PriceRelay already running")
        self._tg = anyio.create_task_group()
        await self._tg.__aenter__()
        self._tg.start_soon(self._feed.run)
        logger.info(
            "relay started for %s (buffer=%d)",
            self._settings.symbol,
            self._buffer.capacity,
            extra={"code_path": f"{__name__}.PriceRelay"},
        )
        return self

    async def __aexit__(self, exc_type, exc, tb) -> Optional[bool]:
        assert self._tg is not None
        self._tg.cancel_scope.cancel()
        try:
            return await self._tg.__aexit__(exc_type, exc, tb)
        finally:
            self._tg = None
            await self._hub.aclose()
            logger.info("relay stopped", extra={"code_path": f"{__name__}.PriceRelay"})

    def get_latest_price(self) -> Optional[Tick]:
        """Return the last tick seen; it goes stale, never empty, during an outage."""
        return self._buffer.latest()

    @trace
    def get_candles(
        self,
        interval_ms: int | None = None,
        start_ms: int | None = None,
        end_ms: int | None = None,
    ) -> List[Candle]:
        """Aggregate the buffered ticks into candles.

        Missing arguments fall back to the configured policy: the candle
        interval from settings and a window of ``candle_lookback_ms`` ending now.
        """
        if interval_ms is None:
            interval_ms = self._settings.candle_interval_ms
        if end_ms is None:
            end_ms = self._clock()
        if start_ms is None:
            start_ms = end_ms - self._settings.candle_lookback_ms
        return aggregate(self._buffer.snapshot(), interval_ms, start_ms, end_ms)
