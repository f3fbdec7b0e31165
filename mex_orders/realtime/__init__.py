"""
Real-Time Order Tracking

Customers open a WebSocket, subscribe to their order id and receive an
ORDER_UPDATE frame every time staff change the order's status.

Usage:
    registry = SubscriptionRegistry()
    broadcaster = BroadcastEngine(registry)

    handler = ConnectionHandler(websocket, registry, store)
    await handler.run()

    await broadcaster.broadcast(order.id, order)
"""

from mex_orders.realtime.broadcast import BroadcastEngine
from mex_orders.realtime.connection import ConnectionHandler, ConnectionState
from mex_orders.realtime.messages import (
    MessageType,
    SubscribeToOrder,
    order_update,
    parse_client_message,
    subscription_confirmed,
)
from mex_orders.realtime.registry import SubscriptionRegistry

__all__ = [
    "BroadcastEngine",
    "ConnectionHandler",
    "ConnectionState",
    "MessageType",
    "SubscribeToOrder",
    "SubscriptionRegistry",
    "order_update",
    "parse_client_message",
    "subscription_confirmed",
]
