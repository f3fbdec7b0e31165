import asyncio

from mex_orders.exceptions import StaleConnectionError
from mex_orders.realtime.broadcast import BroadcastEngine
from mex_orders.realtime.registry import SubscriptionRegistry

from conftest import FakeConnection, make_order


def test_broadcast_without_subscribers_is_noop():
    engine = BroadcastEngine(SubscriptionRegistry())

    delivered = asyncio.run(engine.broadcast(42, make_order()))

    assert delivered == 0


def test_broadcast_reaches_every_subscriber_once():
    registry = SubscriptionRegistry()
    a, b = FakeConnection("a"), FakeConnection("b")
    registry.subscribe(42, a)
    registry.subscribe(42, a)
    registry.subscribe(42, b)

    delivered = asyncio.run(BroadcastEngine(registry).broadcast(42, make_order(status="ready")))

    assert delivered == 2
    for conn in (a, b):
        assert len(conn.received) == 1
        assert conn.received[0]["type"] == "ORDER_UPDATE"
        assert conn.received[0]["order"]["status"] == "ready"


def test_broadcast_only_targets_the_given_order():
    registry = SubscriptionRegistry()
    watcher_x, watcher_y = FakeConnection("x"), FakeConnection("y")
    registry.subscribe(1, watcher_x)
    registry.subscribe(2, watcher_y)

    asyncio.run(BroadcastEngine(registry).broadcast(2, make_order(order_id=2)))

    assert watcher_x.received == []
    assert len(watcher_y.received) == 1


def test_closed_connections_are_skipped_and_left_in_registry():
    registry = SubscriptionRegistry()
    open_conn = FakeConnection("open")
    closed_conn = FakeConnection("closed", is_open=False)
    registry.subscribe(42, open_conn)
    registry.subscribe(42, closed_conn)

    delivered = asyncio.run(BroadcastEngine(registry).broadcast(42, make_order()))

    assert delivered == 1
    assert closed_conn.received == []
    assert registry.get_subscribers(42) == {open_conn, closed_conn}


def test_send_failure_does_not_stop_fanout():
    registry = SubscriptionRegistry()
    broken = FakeConnection("broken", error=RuntimeError("socket half-closed"))
    stale = FakeConnection("stale", error=StaleConnectionError("gone"))
    healthy = FakeConnection("healthy")
    for conn in (broken, stale, healthy):
        registry.subscribe(42, conn)

    delivered = asyncio.run(BroadcastEngine(registry).broadcast(42, make_order()))

    assert delivered == 1
    assert len(healthy.received) == 1
    assert registry.subscription_count == 3
