import asyncio

import pytest

from mex_orders.exceptions import StaleConnectionError
from mex_orders.realtime.broadcast import BroadcastEngine
from mex_orders.realtime.connection import ConnectionHandler, ConnectionState
from mex_orders.realtime.registry import SubscriptionRegistry
from mex_orders.services.orders.memory import MemoryOrderStore

from conftest import FakeWebSocket, make_order


class ExplodingStore(MemoryOrderStore):
    async def get_order(self, order_id):
        raise ConnectionError("database unavailable")


def run_session(store, script, registry=None):
    """Run one handler to completion over a scripted client."""

    async def session():
        ws = FakeWebSocket()
        reg = registry if registry is not None else SubscriptionRegistry()
        handler = ConnectionHandler(ws, reg, store, send_timeout=1.0)
        script(ws)
        await handler.run()
        return ws, reg, handler

    return asyncio.run(session())


def test_subscribe_sends_ack_then_snapshot():
    store = MemoryOrderStore([make_order(42, status="pending")])

    def script(ws):
        ws.push_json({"type": "SUBSCRIBE_TO_ORDER", "orderId": 42})
        ws.push_disconnect()

    ws, registry, handler = run_session(store, script)

    assert ws.sent[0] == {"type": "SUBSCRIPTION_CONFIRMED", "orderId": 42}
    assert ws.sent[1]["type"] == "ORDER_UPDATE"
    assert ws.sent[1]["orderId"] == 42
    assert ws.sent[1]["order"]["status"] == "pending"
    assert len(ws.sent) == 2
    assert handler.state == ConnectionState.CLOSED


def test_disconnect_removes_every_subscription():
    store = MemoryOrderStore([make_order(1), make_order(2)])
    registry = SubscriptionRegistry()

    def script(ws):
        ws.push_json({"type": "SUBSCRIBE_TO_ORDER", "orderId": 1})
        ws.push_json({"type": "SUBSCRIBE_TO_ORDER", "orderId": 2})
        ws.push_disconnect()

    run_session(store, script, registry=registry)

    assert registry.get_subscribers(1) == frozenset()
    assert registry.get_subscribers(2) == frozenset()
    assert len(registry) == 0


def test_unknown_order_gets_ack_only():
    store = MemoryOrderStore()

    def script(ws):
        ws.push_json({"type": "SUBSCRIBE_TO_ORDER", "orderId": 77})
        ws.push_disconnect()

    ws, _, _ = run_session(store, script)

    assert ws.sent == [{"type": "SUBSCRIPTION_CONFIRMED", "orderId": 77}]


def test_malformed_and_unknown_frames_keep_connection_open():
    store = MemoryOrderStore([make_order(5)])

    def script(ws):
        ws.push_text("{not json")
        ws.push_json({"type": "SUBSCRIBE_TO_ORDER", "orderId": "nope"})
        ws.push_json({"type": "PING"})
        ws.push_json({"type": "SUBSCRIBE_TO_ORDER", "orderId": 5})
        ws.push_disconnect()

    ws, _, _ = run_session(store, script)

    assert [m["type"] for m in ws.sent] == ["SUBSCRIPTION_CONFIRMED", "ORDER_UPDATE"]


def test_store_failure_during_snapshot_is_contained():
    store = ExplodingStore()

    def script(ws):
        ws.push_json({"type": "SUBSCRIBE_TO_ORDER", "orderId": 3})
        ws.push_json({"type": "SUBSCRIBE_TO_ORDER", "orderId": 4})
        ws.push_disconnect()

    ws, registry, _ = run_session(store, script)

    assert [m["orderId"] for m in ws.sent] == [3, 4]
    assert len(registry) == 0


def test_binary_frames_are_decoded():
    store = MemoryOrderStore([make_order(8)])

    def script(ws):
        ws.inbox.put_nowait(
            {"type": "websocket.receive", "bytes": b'{"type": "SUBSCRIBE_TO_ORDER", "orderId": 8}'}
        )
        ws.push_disconnect()

    ws, _, _ = run_session(store, script)

    assert ws.sent[0]["type"] == "SUBSCRIPTION_CONFIRMED"


def test_close_is_idempotent():
    registry = SubscriptionRegistry()
    handler = ConnectionHandler(FakeWebSocket(), registry, MemoryOrderStore())
    registry.subscribe(1, handler)

    handler.close()
    handler.close()

    assert handler.state == ConnectionState.CLOSED
    assert len(registry) == 0


def test_send_on_closed_handler_raises_stale():
    handler = ConnectionHandler(FakeWebSocket(), SubscriptionRegistry(), MemoryOrderStore())

    with pytest.raises(StaleConnectionError):
        asyncio.run(handler.send_json({"type": "ORDER_UPDATE"}))


class HungWebSocket(FakeWebSocket):
    async def send_text(self, data):
        await asyncio.sleep(5)


def test_send_timeout_raises_stale():

    async def scenario():
        ws = HungWebSocket()
        handler = ConnectionHandler(ws, SubscriptionRegistry(), MemoryOrderStore(), send_timeout=0.05)
        await ws.accept()
        handler.state = ConnectionState.OPEN
        await handler.send_json({"type": "ORDER_UPDATE"})

    with pytest.raises(StaleConnectionError):
        asyncio.run(scenario())


def test_hung_subscriber_is_dropped_after_first_timeout():
    registry = SubscriptionRegistry()
    engine = BroadcastEngine(registry)

    async def scenario():
        ws = HungWebSocket()
        handler = ConnectionHandler(ws, registry, MemoryOrderStore(), send_timeout=0.05)
        await ws.accept()
        handler.state = ConnectionState.OPEN
        registry.subscribe(42, handler)

        first = await engine.broadcast(42, make_order(status="confirmed"))
        # let the scheduled close run
        await asyncio.sleep(0.01)

        loop = asyncio.get_running_loop()
        started = loop.time()
        second = await engine.broadcast(42, make_order(status="preparing"))
        return ws, handler, first, second, loop.time() - started

    ws, handler, first, second, elapsed = asyncio.run(scenario())

    assert (first, second) == (0, 0)
    assert handler.state == ConnectionState.CLOSED
    assert not handler.is_open
    assert len(registry) == 0
    assert ws.close_code == 1011
    assert elapsed < 0.05


def test_boolean_order_id_is_not_subscribed():
    store = MemoryOrderStore([make_order(1)])

    def script(ws):
        ws.push_json({"type": "SUBSCRIBE_TO_ORDER", "orderId": True})
        ws.push_disconnect()

    ws, _, _ = run_session(store, script)

    assert ws.sent == []
