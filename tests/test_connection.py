from __future__ import annotations

import json

import anyio
import pytest

from pricerelay.connection import FeedState, UpstreamConnection


def _recorder() -> tuple[list[dict], object]:
    sent: list[dict] = []

    async def fake_send(msg: str) -> None:
        sent.append(json.loads(msg))

    return sent, fake_send


@pytest.mark.anyio
async def test_subscribe_once_and_unsubscribe_on_exit() -> None:
    sent, fake_send = _recorder()

    async with UpstreamConnection(sender=fake_send) as conn:
        await conn.subscribe("BINANCE:BTCUSDT")
        await conn.subscribe("BINANCE:BTCUSDT")
        assert conn.symbol == "BINANCE:BTCUSDT"

    assert sent == [
        {"type": "subscribe", "symbol": "BINANCE:BTCUSDT"},
        {"type": "unsubscribe", "symbol": "BINANCE:BTCUSDT"},
    ]


@pytest.mark.anyio
async def test_second_symbol_rejected() -> None:
    _sent, fake_send = _recorder()

    async with UpstreamConnection(sender=fake_send) as conn:
        await conn.subscribe("A")
        with pytest.raises(RuntimeError):
            await conn.subscribe("B")


@pytest.mark.anyio
async def test_no_unsubscribe_after_error_exit() -> None:
    sent, fake_send = _recorder()

    with pytest.raises(ConnectionError):
        async with UpstreamConnection(sender=fake_send) as conn:
            await conn.subscribe("A")
            raise ConnectionError("socket reset")

    assert [m["type"] for m in sent] == ["subscribe"]


@pytest.mark.anyio
async def test_unsubscribe_on_cancellation() -> None:
    sent, fake_send = _recorder()

    with anyio.CancelScope() as scope:
        async with UpstreamConnection(sender=fake_send) as conn:
            await conn.subscribe("A")
            scope.cancel()
            await anyio.sleep(1)

    assert [m["type"] for m in sent] == ["subscribe", "unsubscribe"]


@pytest.mark.anyio
async def test_aclose_without_subscription_sends_nothing() -> None:
    sent, fake_send = _recorder()
    await UpstreamConnection(sender=fake_send).aclose()
    assert sent == []


def test_feed_state_values() -> None:
    assert [s.value for s in FeedState] == ["disconnected", "connecting", "subscribed"]
