import trio
from trio.testing import MockClock, wait_all_tasks_blocked

from pricerelay.events import PriceHistoryBuffer, Tick
from pricerelay.hub import BroadcastHub

from fakes import FakeSubscriber


def _update(tick: Tick) -> dict:
    return {
        "type": "price_update",
        "data": {"price": tick.price, "volume": tick.volume, "timestamp": tick.timestamp_ms},
    }


def _run(main) -> None:
    trio.run(main, clock=MockClock())


def test_snapshot_sent_on_subscribe_when_price_known() -> None:
    buffer = PriceHistoryBuffer(10)
    latest = Tick(101.0, 0.5, 1_000)
    buffer.append(Tick(100.0, 1.0, 500))
    buffer.append(latest)
    hub = BroadcastHub(buffer)
    sub = FakeSubscriber()

    async def main() -> None:
        async with trio.open_nursery() as nursery:
            nursery.start_soon(hub.serve, hub.subscribe(sub))
            await wait_all_tasks_blocked()
            await hub.aclose()

    _run(main)
    assert sub.messages == [_update(latest)]


def test_no_snapshot_when_buffer_empty() -> None:
    hub = BroadcastHub(PriceHistoryBuffer(10))
    sub = FakeSubscriber()

    async def main() -> None:
        async with trio.open_nursery() as nursery:
            nursery.start_soon(hub.serve, hub.subscribe(sub))
            await wait_all_tasks_blocked()
            await hub.aclose()

    _run(main)
    assert sub.messages == []


def test_publish_drops_only_failing_subscriber() -> None:
    hub = BroadcastHub(PriceHistoryBuffer(10))
    subs = [FakeSubscriber(), FakeSubscriber(fail=True), FakeSubscriber()]
    tick = Tick(100.0, 1.0, 1_000)
    remaining: list[int] = []

    async def main() -> None:
        async with trio.open_nursery() as nursery:
            for sub in subs:
                nursery.start_soon(hub.serve, hub.subscribe(sub))
            await wait_all_tasks_blocked()
            await hub.publish(tick)
            await wait_all_tasks_blocked()
            remaining.append(len(hub))
            await hub.aclose()

    _run(main)
    assert remaining == [2]
    assert subs[0].messages == [_update(tick)]
    assert subs[2].messages == [_update(tick)]
    assert hub.metrics["dropped"] == 1


def test_order_preserved_per_subscriber() -> None:
    hub = BroadcastHub(PriceHistoryBuffer(10), maxsize=100)
    subs = [FakeSubscriber(), FakeSubscriber()]
    ticks = [Tick(float(i), 1.0, i) for i in range(20)]

    async def main() -> None:
        async with trio.open_nursery() as nursery:
            for sub in subs:
                nursery.start_soon(hub.serve, hub.subscribe(sub))
            for t in ticks:
                await hub.publish(t)
            await wait_all_tasks_blocked()
            await hub.aclose()

    _run(main)
    for sub in subs:
        assert sub.messages == [_update(t) for t in ticks]


def test_slow_subscriber_is_dropped_when_backlog_full() -> None:
    hub = BroadcastHub(PriceHistoryBuffer(10), maxsize=2)
    # never served, so its queue only fills up
    slow = hub.subscribe(FakeSubscriber())

    async def main() -> None:
        for i in range(2):
            await hub.publish(Tick(float(i), 1.0, i))
        assert slow in hub
        assert hub.metrics["queue_len"] == 2
        await hub.publish(Tick(2.0, 1.0, 2))

    _run(main)
    assert slow not in hub
    assert hub.metrics == {"subscribers": 0, "queue_len": 0, "dropped": 1}


def test_dead_subscriber_is_dropped_on_publish() -> None:
    hub = BroadcastHub(PriceHistoryBuffer(10))
    dead = hub.subscribe(FakeSubscriber())
    alive = hub.subscribe(FakeSubscriber())
    dead._recv.close()

    async def main() -> None:
        await hub.publish(Tick(1.0, 1.0, 1))

    _run(main)
    assert dead not in hub
    assert alive in hub
    assert len(hub) == 1


def test_unsubscribe_is_idempotent() -> None:
    hub = BroadcastHub(PriceHistoryBuffer(10))
    first = hub.subscribe(FakeSubscriber())
    other_sub = FakeSubscriber()
    other = hub.subscribe(other_sub)

    hub.unsubscribe(first)
    hub.unsubscribe(first)
    assert first not in hub
    assert other in hub

    async def main() -> None:
        async with trio.open_nursery() as nursery:
            nursery.start_soon(hub.serve, other)
            await hub.publish(Tick(5.0, 1.0, 5))
            await wait_all_tasks_blocked()
            hub.unsubscribe(other)

    _run(main)
    assert other_sub.messages == [_update(Tick(5.0, 1.0, 5))]
    assert len(hub) == 0


def test_serve_ends_after_unsubscribe() -> None:
    hub = BroadcastHub(PriceHistoryBuffer(10))
    handle = hub.subscribe(FakeSubscriber())
    finished: list[bool] = []

    async def main() -> None:
        async def pump() -> None:
            await hub.serve(handle)
            finished.append(True)

        async with trio.open_nursery() as nursery:
            nursery.start_soon(pump)
            await wait_all_tasks_blocked()
            hub.unsubscribe(handle)

    _run(main)
    assert finished == [True]
