"""
Broadcast Engine

Fans an ORDER_UPDATE out to every connection currently following an order.
Delivery is best-effort and at-most-once: closed connections are skipped,
failed sends are logged, nothing is retried or stored for later.
"""

import asyncio
import logging
from typing import Any, Protocol

from mex_orders.exceptions import StaleConnectionError
from mex_orders.realtime.messages import OrderPayload, order_update
from mex_orders.realtime.registry import SubscriptionRegistry

logger = logging.getLogger(__name__)


class TrackedConnection(Protocol):
    """What the broadcaster needs from a connection."""

    @property
    def is_open(self) -> bool: ...

    async def send_json(self, payload: dict[str, Any]) -> None: ...


class BroadcastEngine:
    """Pushes order updates to registered subscribers."""

    def __init__(self, registry: SubscriptionRegistry):
        self.registry = registry

    async def broadcast(self, order_id: int, order: OrderPayload) -> int:
        """
        Send the order's current state to all of its subscribers.

        Works on a snapshot of the subscriber set and never touches the
        registry; closed connections are removed by their own handler.

        Returns:
            Number of subscribers the update was written to
        """
        subscribers = self.registry.get_subscribers(order_id)
        if not subscribers:
            logger.debug(f"No subscribers for order #{order_id}")
            return 0

        message = order_update(order_id, order)
        targets = [c for c in subscribers if c.is_open]

        results = await asyncio.gather(
            *(self._deliver(c, message) for c in targets),
        )
        delivered = sum(results)

        logger.info(
            f"📡 Order #{order_id} update delivered to {delivered}/{len(subscribers)} subscribers"
        )
        return delivered

    async def _deliver(self, connection: TrackedConnection, message: dict[str, Any]) -> bool:
        try:
            await connection.send_json(message)
            return True
        except StaleConnectionError as e:
            logger.debug(f"Skipping stale connection: {e}")
        except Exception as e:
            logger.warning(f"Broadcast send to {connection!r} failed: {e}")
        return False
