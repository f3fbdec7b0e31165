"""
Notification Dispatchers

The status pipeline hands (order, status) pairs to a dispatcher:
    - NotificationDispatcher sends the SMS in-process
    - QueuedNotificationDispatcher hands it to the Celery worker, which
      retries until the provider accepts it

Author: Khalil Bannouri
Version: 1.0.0
"""

import asyncio
import logging
from typing import Any, Protocol

from mex_orders.schemas import OrderResponse
from mex_orders.services.notifications.base import (
    BaseNotificationService,
    NotificationResult,
)

logger = logging.getLogger(__name__)


class SupportsDelay(Protocol):
    """The slice of a Celery task the queued dispatcher uses."""

    def delay(self, *args: Any, **kwargs: Any) -> Any: ...


class NotificationDispatcher:
    """Sends status notifications directly through a notification service."""

    def __init__(self, service: BaseNotificationService):
        self.service = service

    @property
    def mode(self) -> str:
        return f"direct:{self.service.provider_name}"

    async def send(self, order: OrderResponse, status: str) -> NotificationResult:
        return await self.service.send_order_status(order, status)


class QueuedNotificationDispatcher:
    """Enqueues status notifications on the Celery broker."""

    def __init__(self, task: SupportsDelay):
        self.task = task

    @property
    def mode(self) -> str:
        return "celery"

    async def send(self, order: OrderResponse, status: str) -> NotificationResult:
        # .delay() talks to the broker synchronously
        async_result = await asyncio.to_thread(self.task.delay, order.to_wire(), status)
        logger.debug(f"Queued status SMS for order #{order.id}: task {async_result.id}")
        return NotificationResult(
            success=True,
            message_id=async_result.id,
            provider="celery",
        )
