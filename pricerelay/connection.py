"""Async upstream connection handling the symbol subscription.

``UpstreamConnection`` knows nothing about sockets: it formats protocol
messages and hands them to a send hook, normally ``ws.send`` of an open
``websockets`` client connection.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Awaitable, Callable, Optional

import anyio

from .logging_utils import TRACE_LEVEL
from .messages import subscribe_msg, unsubscribe_msg

__all__ = ["FeedState", "UpstreamConnection"]

SendHook = Callable[[str], Awaitable[None]]

UNSUBSCRIBE_TIMEOUT = 1.0


class FeedState(str, Enum):
    """Connection state of the upstream feed."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    SUBSCRIBED = "subscribed"


class UpstreamConnection:
    """Minimal async wrapper sending subscription messages for one symbol."""

    def __init__(self, sender: SendHook | None = None) -> None:
        self._send_hook: SendHook = sender or (lambda _m: anyio.sleep(0))
        self._symbol: Optional[str] = None
        self._lock = anyio.Lock()

    async def __aenter__(self) -> "UpstreamConnection":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:  # noqa: D401
        # A broken socket cannot carry the unsubscribe; only send it on a
        # clean exit or a shutdown cancellation.
        if exc_type is not None and not issubclass(exc_type, anyio.get_cancelled_exc_class()):
            return
        with anyio.move_on_after(UNSUBSCRIBE_TIMEOUT, shield=True):
            try:
                await self.aclose()
            except Exception:  # noqa: BLE001 – best-effort unsubscribe
                logging.getLogger(__name__).debug(
                    "unsubscribe failed", exc_info=True, extra={"code_path": __name__}
                )

    @property
    def symbol(self) -> Optional[str]:
        return self._symbol

    async def subscribe(self, symbol: str) -> None:
        """Send the subscription request for *symbol* once per connection."""
        async with self._lock:
            if self._symbol == symbol:
                return
            if self._symbol is not None:
                raise RuntimeError(
                    f"connection already subscribed to {self._symbol}; one symbol per feed"
                )
            await self._send_hook(subscribe_msg(symbol))
            self._symbol = symbol
        logging.getLogger(__name__).log(
            TRACE_LEVEL,
            "Subscribed to %s trades",
            symbol,
            extra={"code_path": __name__},
        )

    async def aclose(self) -> None:
        async with self._lock:
            if self._symbol is None:
                return
            await self._send_hook(unsubscribe_msg(self._symbol))
            self._symbol = None
