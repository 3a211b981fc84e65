"""Upstream trade feed: connect, subscribe, ingest, reconnect."""

from __future__ import annotations

import logging
from typing import Any, AsyncContextManager, AsyncIterable, AsyncIterator, Awaitable, Callable

import anyio

from .connection import FeedState, UpstreamConnection
from .constants import DEFAULT_RECONNECT_DELAY
from .decoder import decode_trade_message
from .events import PriceHistoryBuffer, Tick
from .exceptions import InvalidMessageError
from .hub import BroadcastHub
from .logging_utils import TRACE_LEVEL

__all__ = ["UpstreamFeedClient"]

logger = logging.getLogger(__name__)

Connector = Callable[[], AsyncContextManager[Any]]
Sleeper = Callable[[float], Awaitable[Any]]


class UpstreamFeedClient:
    """Keep one upstream subscription alive and feed its ticks into the relay.

    The client cycles ``CONNECTING -> SUBSCRIBED -> DISCONNECTED`` forever.
    Every close or error is followed by a fixed *reconnect_delay* before the
    next attempt; there is no retry ceiling.  Ticks are appended to *buffer*
    and then published to *hub*, in arrival order.  This is the only writer
    of the buffer.

    *connect* returns an async context manager yielding a connection that is
    async-iterable over raw frames and has an async ``send``; with
    ``websockets`` that is ``lambda: websockets.connect(url)``.  *sleep* is
    the delay primitive, replaceable in tests.
    """

    def __init__(
        self,
        connect: Connector,
        symbol: str,
        buffer: PriceHistoryBuffer,
        hub: BroadcastHub,
        *,
        reconnect_delay: float = DEFAULT_RECONNECT_DELAY,
        sleep: Sleeper = anyio.sleep,
    ) -> None:
        self._connect = connect
        self._symbol = symbol
        self._buffer = buffer
        self._hub = hub
        self._delay = reconnect_delay
        self._sleep = sleep
        self._state = FeedState.DISCONNECTED
        self._ticks = 0
        self._dropped = 0
        self._reconnects = 0

    @property
    def state(self) -> FeedState:
        return self._state

    @property
    def symbol(self) -> str:
        return self._symbol

    @property
    def metrics(self) -> dict[str, int]:
        """Return observability metrics."""
        return {
            "ticks": self._ticks,
            "dropped_messages": self._dropped,
            "reconnects": self._reconnects,
        }

    def _set_state(self, state: FeedState) -> None:
        if state is not self._state:
            logger.debug(
                "feed %s: %s -> %s",
                self._symbol,
                self._state.value,
                state.value,
                extra={"code_path": f"{__name__}.UpstreamFeedClient"},
            )
        self._state = state

    async def run(self) -> None:
        """Run the connect/receive/reconnect loop until cancelled."""
        try:
            while True:
                self._set_state(FeedState.CONNECTING)
                try:
                    async with self._connect() as ws:
                        async with UpstreamConnection(sender=ws.send) as conn:
                            await conn.subscribe(self._symbol)
                            self._set_state(FeedState.SUBSCRIBED)
                            logger.info(
                                "subscribed to %s",
                                self._symbol,
                                extra={"code_path": f"{__name__}.UpstreamFeedClient.run"},
                            )
                            async for tick in self.receive(ws):
                                await self._ingest(tick)
                    logger.warning(
                        "upstream closed the %s feed",
                        self._symbol,
                        extra={"code_path": f"{__name__}.UpstreamFeedClient.run"},
                    )
                except anyio.get_cancelled_exc_class():
                    raise
                except Exception:
                    logger.exception(
                        "upstream %s feed error",
                        self._symbol,
                        extra={"code_path": f"{__name__}.UpstreamFeedClient.run"},
                    )
                self._set_state(FeedState.DISCONNECTED)
                self._reconnects += 1
                logger.info(
                    "reconnecting in %.1fs",
                    self._delay,
                    extra={"code_path": f"{__name__}.UpstreamFeedClient.run"},
                )
                await self._sleep(self._delay)
        finally:
            self._set_state(FeedState.DISCONNECTED)

    async def receive(self, frames: AsyncIterable[Any]) -> AsyncIterator[Tick]:
        """Yield the ticks carried by *frames*, skipping malformed ones.

        Iterating again over a fresh connection restarts the sequence; nothing
        is carried over from a previous connection.
        """
        async for raw in frames:
            try:
                ticks = decode_trade_message(raw)
            except InvalidMessageError as exc:
                self._dropped += 1
                logger.warning(
                    "dropping malformed upstream message: %s",
                    exc,
                    extra={"code_path": f"{__name__}.UpstreamFeedClient.receive"},
                )
                continue
            for tick in ticks:
                yield tick

    async def _ingest(self, tick: Tick) -> None:
        self._buffer.append(tick)
        self._ticks += 1
        logger.log(
            TRACE_LEVEL,
            "tick %s x %s @ %d",
            tick.price,
            tick.volume,
            tick.timestamp_ms,
            extra={"code_path": f"{__name__}.UpstreamFeedClient._ingest"},
        )
        await self._hub.publish(tick)
