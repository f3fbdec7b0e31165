import pytest
from fastapi.testclient import TestClient

from mex_orders.main import create_app
from mex_orders.services.orders.memory import MemoryOrderStore

from conftest import ADMIN_HEADERS, FakeNotifier, make_order


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def client(notifier):
    store = MemoryOrderStore([make_order(42), make_order(7)])
    with TestClient(create_app(order_store=store, notifier=notifier)) as test_client:
        yield test_client


def test_customer_sees_status_change_live(client, notifier):
    with client.websocket_connect("/ws") as ws:
        ws.send_json({"type": "SUBSCRIBE_TO_ORDER", "orderId": 42})

        assert ws.receive_json() == {"type": "SUBSCRIPTION_CONFIRMED", "orderId": 42}
        snapshot = ws.receive_json()
        assert snapshot["type"] == "ORDER_UPDATE"
        assert snapshot["order"]["status"] == "pending"

        response = client.patch(
            "/api/orders/42/status", json={"status": "ready"}, headers=ADMIN_HEADERS
        )
        assert response.status_code == 200

        update = ws.receive_json()
        assert update["type"] == "ORDER_UPDATE"
        assert update["orderId"] == 42
        assert update["order"]["status"] == "ready"
        assert update["order"]["customerName"] == "Maria Lopez"

    client.portal.call(client.app.state.coordinator.drain)
    assert [status for _, status in notifier.calls] == ["ready"]


def test_two_trackers_each_get_one_update(client):
    with client.websocket_connect("/ws") as first, client.websocket_connect("/ws") as second:
        for ws in (first, second):
            ws.send_json({"type": "SUBSCRIBE_TO_ORDER", "orderId": 42})
            ws.receive_json()
            ws.receive_json()

        registry = client.app.state.registry
        assert registry.connection_count == 2
        assert registry.subscription_count == 2

        client.patch("/api/orders/42/status", json={"status": "preparing"}, headers=ADMIN_HEADERS)

        for ws in (first, second):
            assert ws.receive_json()["order"]["status"] == "preparing"


def test_updates_for_other_orders_are_not_delivered(client):
    with client.websocket_connect("/ws") as ws:
        ws.send_json({"type": "SUBSCRIBE_TO_ORDER", "orderId": 7})
        ws.receive_json()
        ws.receive_json()

        client.patch("/api/orders/42/status", json={"status": "confirmed"}, headers=ADMIN_HEADERS)
        client.patch("/api/orders/7/status", json={"status": "cancelled"}, headers=ADMIN_HEADERS)

        update = ws.receive_json()
        assert update["orderId"] == 7
        assert update["order"]["status"] == "cancelled"


def test_malformed_frame_does_not_close_connection(client):
    with client.websocket_connect("/ws") as ws:
        ws.send_text("definitely not json")
        ws.send_json({"type": "SUBSCRIBE_TO_ORDER", "orderId": 42})

        assert ws.receive_json()["type"] == "SUBSCRIPTION_CONFIRMED"


def test_deleted_order_is_announced(client):
    with client.websocket_connect("/ws") as ws:
        ws.send_json({"type": "SUBSCRIBE_TO_ORDER", "orderId": 42})
        ws.receive_json()
        ws.receive_json()

        assert client.delete("/api/orders/42", headers=ADMIN_HEADERS).status_code == 200

        assert ws.receive_json() == {
            "type": "ORDER_UPDATE",
            "orderId": 42,
            "order": {"id": 42, "deleted": True},
        }


def test_disconnect_clears_subscriptions(client):
    with client.websocket_connect("/ws") as ws:
        ws.send_json({"type": "SUBSCRIBE_TO_ORDER", "orderId": 42})
        ws.receive_json()
        ws.receive_json()
        assert 42 in client.app.state.registry

    assert len(client.app.state.registry) == 0
    response = client.patch(
        "/api/orders/42/status", json={"status": "ready"}, headers=ADMIN_HEADERS
    )
    assert response.status_code == 200


def test_order_42_confirmed_then_disconnect_then_preparing(client, notifier):
    registry = client.app.state.registry

    with client.websocket_connect("/ws") as ws:
        ws.send_json({"type": "SUBSCRIBE_TO_ORDER", "orderId": 42})
        assert ws.receive_json() == {"type": "SUBSCRIPTION_CONFIRMED", "orderId": 42}
        assert ws.receive_json()["order"]["status"] == "pending"

        confirmed = client.patch(
            "/api/orders/42/status", json={"status": "confirmed"}, headers=ADMIN_HEADERS
        )
        assert confirmed.status_code == 200

        update = ws.receive_json()
        assert (update["type"], update["orderId"]) == ("ORDER_UPDATE", 42)
        assert update["order"]["status"] == "confirmed"

    assert 42 not in registry

    preparing = client.patch(
        "/api/orders/42/status", json={"status": "preparing"}, headers=ADMIN_HEADERS
    )
    client.portal.call(client.app.state.coordinator.drain)

    assert preparing.status_code == 200
    assert preparing.json()["status"] == "preparing"
    assert client.get("/api/orders/42").json()["status"] == "preparing"
    assert [status for _, status in notifier.calls] == ["confirmed", "preparing"]
