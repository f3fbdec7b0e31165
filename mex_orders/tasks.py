"""
Celery Tasks
Background delivery of order status SMS messages.
"""

import asyncio
import logging
import time

from mex_orders.celery_worker import celery_app
from mex_orders.exceptions import NotificationFailure
from mex_orders.schemas import OrderResponse
from mex_orders.services.notifications import get_notification_service

logger = logging.getLogger(__name__)


@celery_app.task(
    bind=True,
    max_retries=3,
    default_retry_delay=5,
    autoretry_for=(NotificationFailure,),
    retry_backoff=True
)
def send_order_status_sms(self, order_data: dict, status: str) -> dict:
    """
    Text the customer about a status change.
    Runs on the Celery worker; a failed send raises so Celery retries it.

    Args:
        order_data: Order as sent over the wire (camelCase keys)
        status: The new order status

    Returns:
        dict: Result of the send
    """
    task_id = self.request.id
    order = OrderResponse.model_validate(order_data)

    logger.info(f"📨 Task {task_id}: status SMS for order #{order.id} ({status})")
    start_time = time.time()

    service = get_notification_service()
    result = asyncio.run(service.send_order_status(order, status))

    elapsed = round(time.time() - start_time, 3)
    if not result.success:
        logger.warning(
            f"⚠️ Task {task_id}: order #{order.id} SMS failed after {elapsed}s - {result.error_message}"
        )
        raise NotificationFailure(result.error_message or "SMS delivery failed")

    logger.info(f"✅ Task {task_id}: order #{order.id} SMS sent in {elapsed}s")
    return {
        'success': True,
        'order_id': order.id,
        'status': status,
        'message_id': result.message_id,
        'provider': result.provider,
        'task_id': task_id,
        'processing_time_seconds': elapsed,
    }

