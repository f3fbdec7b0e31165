from __future__ import annotations

import asyncio
import json
import os
from datetime import datetime, timezone
from typing import Any, Optional

import pytest

# Settings are cached on first import; pin a test-safe configuration.
os.environ["ENV_MODE"] = "development"
os.environ["ORDER_STORE_BACKEND"] = "memory"
os.environ["ADMIN_API_TOKEN"] = "test-admin-token"
os.environ["NOTIFICATION_QUEUE_ENABLED"] = "false"
os.environ["STRICT_STATUS_TRANSITIONS"] = "false"

from starlette.websockets import WebSocketState  # noqa: E402

from mex_orders.schemas import OrderResponse  # noqa: E402
from mex_orders.services.notifications.base import (  # noqa: E402
    BaseNotificationService,
    NotificationResult,
)

ADMIN_HEADERS = {"X-Admin-Token": "test-admin-token"}


def make_order(order_id: int = 42, status: str = "pending", **overrides: Any) -> OrderResponse:
    data: dict[str, Any] = {
        "id": order_id,
        "customer_name": "Maria Lopez",
        "customer_email": "maria@example.com",
        "customer_phone": "555-123-4567",
        "delivery_address": "12 Market St",
        "city": "New York",
        "zip_code": "10001",
        "subtotal": 23.0,
        "delivery_fee": 0.0,
        "tax": 2.04,
        "total": 25.04,
        "status": status,
        "items": [{"id": 3, "name": "Carne Asada Burrito", "quantity": 2, "price": 11.5}],
        "created_at": datetime(2024, 5, 1, 18, 30, tzinfo=timezone.utc),
    }
    data.update(overrides)
    return OrderResponse(**data)


class FakeNotifier:
    """Stands in for a notification dispatcher."""

    def __init__(self, error: Optional[Exception] = None, success: bool = True) -> None:
        self.calls: list[tuple[OrderResponse, str]] = []
        self.error = error
        self.success = success

    async def send(self, order: OrderResponse, status: str) -> NotificationResult:
        self.calls.append((order, status))
        if self.error is not None:
            raise self.error
        return NotificationResult(
            success=self.success,
            message_id="fake-1" if self.success else None,
            error_message=None if self.success else "carrier rejected number",
            provider="fake",
        )


class RecordingSmsService(BaseNotificationService):
    """Notification service that keeps messages instead of sending them."""

    def __init__(self, success: bool = True) -> None:
        super().__init__("The Mex")
        self.sent: list[tuple[str, str]] = []
        self.success = success

    @property
    def provider_name(self) -> str:
        return "recording"

    async def send_sms(self, to_phone: str, message: str) -> NotificationResult:
        self.sent.append((to_phone, message))
        return NotificationResult(
            success=self.success,
            message_id="sms-1" if self.success else None,
            error_message=None if self.success else "carrier error",
            provider="recording",
        )

    async def health_check(self) -> bool:
        return True


class FakeConnection:
    """Minimal connection for broadcast tests."""

    def __init__(self, name: str, is_open: bool = True, error: Optional[Exception] = None) -> None:
        self.name = name
        self.is_open = is_open
        self.error = error
        self.received: list[dict[str, Any]] = []

    async def send_json(self, payload: dict[str, Any]) -> None:
        if self.error is not None:
            raise self.error
        self.received.append(payload)

    def __repr__(self) -> str:
        return f"<FakeConnection {self.name}>"


class FakeWebSocket:
    """Scriptable stand-in for a Starlette WebSocket."""

    def __init__(self) -> None:
        self.client_state = WebSocketState.CONNECTING
        self.application_state = WebSocketState.CONNECTING
        self.sent: list[dict[str, Any]] = []
        self.inbox: asyncio.Queue[dict[str, Any]] = asyncio.Queue()
        self.send_error: Optional[Exception] = None
        self.close_code: Optional[int] = None

    async def accept(self) -> None:
        self.client_state = WebSocketState.CONNECTED
        self.application_state = WebSocketState.CONNECTED

    async def receive(self) -> dict[str, Any]:
        message = await self.inbox.get()
        if message["type"] == "websocket.disconnect":
            self.client_state = WebSocketState.DISCONNECTED
        return message

    async def send_text(self, data: str) -> None:
        if self.send_error is not None:
            raise self.send_error
        self.sent.append(json.loads(data))

    async def close(self, code: int = 1000, reason: Optional[str] = None) -> None:
        self.application_state = WebSocketState.DISCONNECTED
        self.close_code = code

    def push_text(self, text: str) -> None:
        self.inbox.put_nowait({"type": "websocket.receive", "text": text})

    def push_json(self, payload: Any) -> None:
        self.push_text(json.dumps(payload))

    def push_disconnect(self, code: int = 1000) -> None:
        self.inbox.put_nowait({"type": "websocket.disconnect", "code": code})


@pytest.fixture
def order() -> OrderResponse:
    return make_order()
