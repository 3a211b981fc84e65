"""Fake upstream and downstream connections used across the tests."""

from __future__ import annotations

import json
from typing import Any

import anyio


def trade_frame(*trades: tuple[float, float, int]) -> str:
    """Return an upstream trade frame carrying ``(price, volume, ts_ms)`` entries."""
    return json.dumps(
        {
            "type": "trade",
            "data": [{"p": p, "v": v, "t": t, "s": "BINANCE:BTCUSDT"} for p, v, t in trades],
        }
    )


class DummyConn:
    """Upstream connection replaying *frames*, then closing (or failing)."""

    def __init__(self, frames: list[str], error: Exception | None = None) -> None:
        self._frames = list(frames)
        self._error = error
        self.sent: list[dict[str, Any]] = []

    async def __aenter__(self) -> "DummyConn":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        pass

    def __aiter__(self) -> "DummyConn":
        return self

    async def __anext__(self) -> str:
        if not self._frames:
            if self._error is not None:
                raise self._error
            raise StopAsyncIteration
        await anyio.sleep(0)
        return self._frames.pop(0)

    async def send(self, msg: str) -> None:
        self.sent.append(json.loads(msg))


class FakeSubscriber:
    """Downstream connection recording decoded messages."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.messages: list[dict[str, Any]] = []

    async def send(self, message: str) -> None:
        if self.fail:
            raise ConnectionResetError("subscriber went away")
        self.messages.append(json.loads(message))
