"""
Status Transition Coordinator

The one code path for staff changing an order's status. Each change is
applied in three steps, in this order:

    1. write the new status to the order store   (failure → caller)
    2. broadcast ORDER_UPDATE to live subscribers (failure → logged)
    3. text the customer for selected statuses    (failure → logged)

Steps are sequential but not transactional: the stored status is
authoritative, real-time delivery and SMS are best-effort on top of it.
The SMS runs in its own task so a slow provider never holds up the admin
response or the broadcast.

Author: Khalil Bannouri
Version: 1.0.0
"""

import asyncio
import logging
from typing import Iterable, Optional, Protocol, Union

from mex_orders.exceptions import (
    InvalidStatusError,
    InvalidStatusTransitionError,
    OrderNotFoundError,
)
from mex_orders.models import OrderStatus
from mex_orders.realtime.broadcast import BroadcastEngine
from mex_orders.schemas import OrderResponse
from mex_orders.services.notifications.base import NotificationResult
from mex_orders.services.orders.base import BaseOrderStore

logger = logging.getLogger(__name__)

DEFAULT_NOTIFY_STATUSES = (
    OrderStatus.CONFIRMED.value,
    OrderStatus.PREPARING.value,
    OrderStatus.READY.value,
)


class StatusNotifier(Protocol):
    async def send(self, order: OrderResponse, status: str) -> NotificationResult: ...


class StatusTransitionCoordinator:
    """
    Sequences store update, broadcast and customer notification.

    Attributes:
        store: Order persistence
        broadcaster: Fan-out to WebSocket subscribers
        notifier: Out-of-band customer messages
        notify_statuses: Statuses that trigger a customer message
        strict: Enforce the transition table in OrderStatus
    """

    def __init__(
        self,
        store: BaseOrderStore,
        broadcaster: BroadcastEngine,
        notifier: StatusNotifier,
        notify_statuses: Iterable[str] = DEFAULT_NOTIFY_STATUSES,
        strict: bool = False,
    ):
        self.store = store
        self.broadcaster = broadcaster
        self.notifier = notifier
        self.notify_statuses = frozenset(notify_statuses)
        self.strict = strict
        self._pending: set[asyncio.Task] = set()

    @property
    def pending_notifications(self) -> int:
        return len(self._pending)

    async def transition(
        self,
        order_id: int,
        new_status: Union[OrderStatus, str],
    ) -> OrderResponse:
        """
        Change an order's status and tell everyone watching it.

        Args:
            order_id: Order to update
            new_status: Target status

        Returns:
            The updated order, whatever happened to broadcast and SMS

        Raises:
            InvalidStatusError: new_status is not an order status
            InvalidStatusTransitionError: strict mode and the move is not allowed
            OrderNotFoundError: No such order; nothing is broadcast or sent
        """
        status = self._coerce_status(new_status)

        if self.strict:
            await self._check_transition(order_id, status)

        updated = await self.store.update_status(order_id, status.value)
        if updated is None:
            raise OrderNotFoundError(order_id)

        logger.info(f"Order #{order_id} status changed to '{status.value}'")

        try:
            await self.broadcaster.broadcast(order_id, updated)
        except Exception as e:
            logger.exception(f"Broadcast for order #{order_id} failed: {e}")

        if status.value in self.notify_statuses:
            self._spawn_notification(updated, status.value)

        return updated

    async def delete(self, order_id: int) -> None:
        """Delete an order and tell its subscribers it is gone."""
        deleted = await self.store.delete_order(order_id)
        if not deleted:
            raise OrderNotFoundError(order_id)

        logger.info(f"Order #{order_id} deleted")

        try:
            await self.broadcaster.broadcast(order_id, {"id": order_id, "deleted": True})
        except Exception as e:
            logger.exception(f"Broadcast for deleted order #{order_id} failed: {e}")

    async def drain(self) -> None:
        """Wait for in-flight notifications (shutdown, tests)."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    # =========================================================================
    # HELPERS
    # =========================================================================

    @staticmethod
    def _coerce_status(value: Union[OrderStatus, str]) -> OrderStatus:
        if isinstance(value, OrderStatus):
            return value
        if not isinstance(value, str):
            raise InvalidStatusError(value)
        try:
            return OrderStatus(value.strip().lower())
        except ValueError:
            raise InvalidStatusError(value)

    async def _check_transition(self, order_id: int, status: OrderStatus) -> None:
        current = await self.store.get_order(order_id)
        if current is None:
            raise OrderNotFoundError(order_id)

        try:
            current_status = OrderStatus(current.status)
        except ValueError:
            # Legacy free-form value, nothing to check against
            logger.warning(f"Order #{order_id} has unknown status '{current.status}'")
            return

        if not current_status.can_transition_to(status):
            raise InvalidStatusTransitionError(order_id, current_status.value, status.value)

    def _spawn_notification(self, order: OrderResponse, status: str) -> None:
        task = asyncio.create_task(
            self._notify(order, status),
            name=f"notify-order-{order.id}-{status}",
        )
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _notify(self, order: OrderResponse, status: str) -> Optional[NotificationResult]:
        try:
            result = await self.notifier.send(order, status)
        except Exception as e:
            logger.error(f"Failed to send SMS notification for order #{order.id}: {e}")
            return None

        if result.success:
            logger.info(f"Status notification for order #{order.id} sent ({result.provider})")
        else:
            logger.warning(
                f"Status notification for order #{order.id} failed: {result.error_message}"
            )
        return result
