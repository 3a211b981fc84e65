"""WebSocket endpoint for downstream subscribers.

Every accepted connection is registered with the :class:`BroadcastHub` and
gets its own pump task.  Subscribers are listeners only; anything they send is
read and discarded so that a closing handshake is always noticed.
"""

from __future__ import annotations

import functools
import logging
from typing import Any

import anyio
import anyio.abc
import websockets
from websockets.exceptions import ConnectionClosed

from .hub import BroadcastHub
from .logging_utils import TRACE_LEVEL

__all__ = ["handle_subscriber", "serve_subscribers"]

logger = logging.getLogger(__name__)


async def _drain_inbound(connection: Any) -> None:
    try:
        async for message in connection:
            logger.log(
                TRACE_LEVEL,
                "ignoring subscriber message: %.80r",
                message,
                extra={"code_path": f"{__name__}._drain_inbound"},
            )
    except ConnectionClosed:
        pass


async def handle_subscriber(hub: BroadcastHub, connection: Any) -> None:
    """Serve one subscriber connection until either side goes away."""
    handle = hub.subscribe(connection)
    try:
        async with anyio.create_task_group() as tg:

            async def _pump() -> None:
                await hub.serve(handle)
                tg.cancel_scope.cancel()

            tg.start_soon(_pump)
            await _drain_inbound(connection)
            tg.cancel_scope.cancel()
    finally:
        hub.unsubscribe(handle)


async def serve_subscribers(
    hub: BroadcastHub,
    host: str,
    port: int,
    *,
    task_status: anyio.abc.TaskStatus[Any] = anyio.TASK_STATUS_IGNORED,
) -> None:
    """Accept subscriber connections on ``ws://host:port`` until cancelled.

    Requires the asyncio backend (``websockets`` is asyncio-only).
    """
    handler = functools.partial(handle_subscriber, hub)
    async with websockets.serve(handler, host, port) as server:
        logger.info(
            "subscriber endpoint listening on ws://%s:%d",
            host,
            port,
            extra={"code_path": f"{__name__}.serve_subscribers"},
        )
        task_status.started(server)
        await anyio.sleep_forever()
