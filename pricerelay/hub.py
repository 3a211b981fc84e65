"""In-memory broadcast hub fanning price updates out to live subscribers.

Each subscriber owns a bounded ``anyio`` memory stream.  ``publish`` never
waits: it drops a message into every queue with ``send_nowait`` and evicts any
subscriber whose queue is closed (dead) or full (too slow to keep up).  A
per-subscriber pump, :meth:`BroadcastHub.serve`, drains the queue into the
subscriber's connection, so a slow socket only ever stalls itself.
"""

from __future__ import annotations

import itertools
import logging
import threading
from dataclasses import dataclass, field
from typing import Awaitable, Dict, Protocol

import anyio
from anyio.streams.memory import (
    MemoryObjectReceiveStream,
    MemoryObjectSendStream,
)

from .constants import DEFAULT_SUBSCRIBER_QUEUE
from .events import PriceHistoryBuffer, Tick
from .logging_utils import TRACE_LEVEL
from .messages import price_update_msg

__all__ = ["BroadcastHub", "SubscriberConnection", "SubscriptionHandle"]


logger = logging.getLogger(__name__)


class SubscriberConnection(Protocol):
    """Anything with an async ``send(str)``, e.g. a ``websockets`` connection."""

    def send(self, message: str) -> Awaitable[None]: ...


@dataclass(eq=False)
class SubscriptionHandle:
    """Registration of one subscriber connection with the hub."""

    id: int
    connection: SubscriberConnection
    _send: MemoryObjectSendStream[str] = field(repr=False)
    _recv: MemoryObjectReceiveStream[str] = field(repr=False)
    _serving: bool = field(default=False, repr=False)


class BroadcastHub:
    """Best-effort, at-most-once fan-out of ``price_update`` messages.

    Example
    -------
    >>> hub = BroadcastHub(buffer)
    >>> handle = hub.subscribe(ws)
    >>> await hub.serve(handle)   # runs until ws fails or is unsubscribed
    """

    def __init__(
        self, buffer: PriceHistoryBuffer, maxsize: int = DEFAULT_SUBSCRIBER_QUEUE
    ) -> None:
        if maxsize <= 0:
            raise ValueError(f"subscriber queue size must be positive, got {maxsize}")
        self._buffer = buffer
        self._maxsize = maxsize
        self._subs: Dict[int, SubscriptionHandle] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()
        self._dropped = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._subs)

    def __contains__(self, handle: object) -> bool:
        with self._lock:
            return isinstance(handle, SubscriptionHandle) and self._subs.get(handle.id) is handle

    def subscribe(self, connection: SubscriberConnection) -> SubscriptionHandle:
        """Register *connection*; queue a snapshot when a current price exists."""
        send, recv = anyio.create_memory_object_stream[str](self._maxsize)
        with self._lock:
            handle = SubscriptionHandle(next(self._ids), connection, send, recv)
            # Queued under the lock so no publish can slip in ahead of it.
            latest = self._buffer.latest()
            if latest is not None:
                send.send_nowait(price_update_msg(latest))
            self._subs[handle.id] = handle
        logger.info(
            "subscriber %d connected (%d live)",
            handle.id,
            len(self),
            extra={"code_path": f"{__name__}.BroadcastHub.subscribe"},
        )
        return handle

    def unsubscribe(self, handle: SubscriptionHandle) -> None:
        """Remove *handle*; calling it again is a no-op."""
        with self._lock:
            removed = self._subs.pop(handle.id, None) is not None
        handle._send.close()
        if not handle._serving:
            handle._recv.close()
        if removed:
            logger.info(
                "subscriber %d disconnected (%d live)",
                handle.id,
                len(self),
                extra={"code_path": f"{__name__}.BroadcastHub.unsubscribe"},
            )

    async def publish(self, tick: Tick) -> None:
        """Queue a ``price_update`` for *tick* to every live subscriber.

        The call does not block.  Subscribers with a full or closed queue are
        removed; delivery to the others continues.
        """
        message = price_update_msg(tick)
        with self._lock:
            targets = list(self._subs.values())
        for handle in targets:
            try:
                handle._send.send_nowait(message)
            except anyio.WouldBlock:
                logger.warning(
                    "dropping subscriber %d: backlog of %d messages is full",
                    handle.id,
                    self._maxsize,
                    extra={"code_path": f"{__name__}.BroadcastHub.publish"},
                )
                self._drop(handle)
            except (anyio.BrokenResourceError, anyio.ClosedResourceError):
                self._drop(handle)
        logger.log(
            TRACE_LEVEL,
            "published %s to %d subscribers",
            tick.price,
            len(targets),
            extra={"code_path": f"{__name__}.BroadcastHub.publish"},
        )

    async def serve(self, handle: SubscriptionHandle) -> None:
        """Deliver queued messages to ``handle.connection`` until it closes.

        A failed send ends the pump and removes the subscriber.  The pump also
        ends once the handle is unsubscribed and its queue drained.
        """
        handle._serving = True
        try:
            async with handle._recv:
                async for message in handle._recv:
                    await handle.connection.send(message)
        except anyio.get_cancelled_exc_class():
            raise
        except Exception as exc:  # noqa: BLE001 – any transport error ends this subscriber
            logger.info(
                "subscriber %d send failed: %s",
                handle.id,
                exc,
                extra={"code_path": f"{__name__}.BroadcastHub.serve"},
            )
            self._drop(handle)
        finally:
            self.unsubscribe(handle)

    def _drop(self, handle: SubscriptionHandle) -> None:
        if handle in self:
            with self._lock:
                self._dropped += 1
        self.unsubscribe(handle)

    async def aclose(self) -> None:
        """Unsubscribe everybody."""
        with self._lock:
            handles = list(self._subs.values())
        for handle in handles:
            self.unsubscribe(handle)

    @property
    def metrics(self) -> dict[str, int]:
        """Return observability metrics."""
        with self._lock:
            handles = list(self._subs.values())
            dropped = self._dropped
        qlen = sum(h._send.statistics().current_buffer_used for h in handles)
        return {"subscribers": len(handles), "queue_len": qlen, "dropped": dropped}
