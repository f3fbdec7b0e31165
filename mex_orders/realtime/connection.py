"""
WebSocket Connection Handler

One ConnectionHandler owns one customer connection from accept to close:

    CONNECTING → OPEN → CLOSED

There is no reconnecting state; a client that reconnects gets a brand new
handler and has to subscribe again. A closed handler is removed from every
registry entry exactly once.
"""

import asyncio
import json
import logging
import uuid
from enum import Enum
from typing import Any, Optional

from fastapi import WebSocket, WebSocketDisconnect
from starlette.websockets import WebSocketState

from mex_orders.exceptions import MalformedMessageError, StaleConnectionError
from mex_orders.realtime.messages import (
    order_update,
    parse_client_message,
    subscription_confirmed,
)
from mex_orders.realtime.registry import SubscriptionRegistry
from mex_orders.services.orders.base import BaseOrderStore

logger = logging.getLogger(__name__)


class ConnectionState(str, Enum):
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"


class ConnectionHandler:
    """Server side of one order tracking WebSocket."""

    def __init__(
        self,
        websocket: WebSocket,
        registry: "SubscriptionRegistry[ConnectionHandler]",
        store: BaseOrderStore,
        send_timeout: float = 5.0,
    ):
        self.websocket = websocket
        self.registry = registry
        self.store = store
        self.send_timeout = send_timeout
        self.connection_id = uuid.uuid4().hex[:8]
        self.state = ConnectionState.CONNECTING
        self._released = False
        self._close_task: Optional[asyncio.Task] = None

    def __repr__(self) -> str:
        return f"<ConnectionHandler {self.connection_id} {self.state.value}>"

    @property
    def is_open(self) -> bool:
        return (
            self.state == ConnectionState.OPEN
            and self.websocket.client_state == WebSocketState.CONNECTED
            and self.websocket.application_state == WebSocketState.CONNECTED
        )

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def run(self) -> None:
        """Accept the socket and process frames until the client goes away."""
        await self.websocket.accept()
        self.state = ConnectionState.OPEN
        logger.info(f"WebSocket client connected ({self.connection_id})")

        try:
            while True:
                raw = await self._receive_frame()
                await self.handle_message(raw)
        except WebSocketDisconnect as e:
            logger.info(f"WebSocket client disconnected ({self.connection_id}, code={e.code})")
        except StaleConnectionError as e:
            logger.info(f"WebSocket client dropped ({self.connection_id}): {e}")
        finally:
            self.close()

    def close(self) -> None:
        """Mark the handler closed and drop all of its subscriptions."""
        self.state = ConnectionState.CLOSED
        if self._released:
            return
        self._released = True

        removed = self.registry.unsubscribe_all(self)
        if removed:
            logger.debug(f"Connection {self.connection_id} unsubscribed from orders {removed}")

    async def _receive_frame(self) -> str:
        message = await self.websocket.receive()
        if message["type"] == "websocket.disconnect":
            raise WebSocketDisconnect(message.get("code", 1000), message.get("reason"))

        text = message.get("text")
        if text is None:
            text = (message.get("bytes") or b"").decode("utf-8", errors="replace")
        return text

    # =========================================================================
    # MESSAGE DISPATCH
    # =========================================================================

    async def handle_message(self, raw: str) -> None:
        """
        Process one inbound frame.

        A bad frame or a failure while serving it is logged and dropped;
        only a disconnect ends the connection.
        """
        try:
            request = parse_client_message(raw)
        except MalformedMessageError as e:
            logger.warning(f"Malformed message on {self.connection_id}: {e.reason}")
            return

        if request is None:
            logger.debug(f"Ignoring unsupported message on {self.connection_id}")
            return

        try:
            await self.subscribe(request.order_id)
        except (WebSocketDisconnect, StaleConnectionError):
            raise
        except Exception as e:
            logger.exception(f"Error processing subscription on {self.connection_id}: {e}")

    async def subscribe(self, order_id: int) -> None:
        """Register interest in an order, acknowledge, then push its current state."""
        self.registry.subscribe(order_id, self)
        logger.info(f"Connection {self.connection_id} subscribed to order #{order_id}")

        await self.send_json(subscription_confirmed(order_id))

        # Catch-up snapshot for clients joining mid-flight
        order = await self.store.get_order(order_id)
        if order is None:
            logger.debug(f"Order #{order_id} not found, no snapshot sent")
            return
        if self.is_open:
            await self.send_json(order_update(order_id, order))

    # =========================================================================
    # OUTBOUND
    # =========================================================================

    async def send_json(self, payload: dict[str, Any]) -> None:
        """
        Send one JSON text frame, bounded by the write timeout.

        Raises:
            StaleConnectionError: The connection is closed or the write timed out
        """
        if not self.is_open:
            raise StaleConnectionError(f"Connection {self.connection_id} is not open")

        try:
            await asyncio.wait_for(
                self.websocket.send_text(json.dumps(payload)),
                timeout=self.send_timeout,
            )
        except asyncio.TimeoutError as e:
            # The cancelled write may have left a partial frame on the wire
            self.abort()
            raise StaleConnectionError(
                f"Send to {self.connection_id} timed out after {self.send_timeout}s"
            ) from e

    def abort(self, code: int = 1011) -> None:
        """Give up on a connection that stopped draining writes."""
        if self.state == ConnectionState.CLOSED:
            return
        logger.warning(f"Dropping unresponsive connection {self.connection_id}")
        self.close()
        self._close_task = asyncio.create_task(self._close_socket(code))

    async def _close_socket(self, code: int) -> None:
        try:
            await asyncio.wait_for(self.websocket.close(code=code), timeout=self.send_timeout)
        except Exception as e:
            logger.debug(f"Close of {self.connection_id} did not complete: {e}")
