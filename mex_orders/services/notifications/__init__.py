"""
Notification Service Factory

Returns Mock or Real notification service based on ENV_MODE.

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
from functools import lru_cache

from mex_orders.core.config import get_settings
from mex_orders.services.notifications.base import (
    BaseNotificationService,
    NotificationResult,
    build_status_message,
    format_phone_number,
)
from mex_orders.services.notifications.dispatcher import (
    NotificationDispatcher,
    QueuedNotificationDispatcher,
)
from mex_orders.services.notifications.mock import MockNotificationService
from mex_orders.services.notifications.real import RealNotificationService

logger = logging.getLogger(__name__)


@lru_cache()
def get_notification_service() -> BaseNotificationService:
    """Get the configured notification service."""
    settings = get_settings()

    if settings.is_development:
        logger.info("Notification Service: Using MockNotificationService (development mode)")
        return MockNotificationService(settings.restaurant_name, failure_rate=0.05)
    else:
        logger.info(f"Notification Service: Using RealNotificationService ({settings.env_mode.value} mode)")
        return RealNotificationService(
            settings.restaurant_name,
            account_sid=settings.twilio_account_sid,
            auth_token=settings.twilio_auth_token,
            from_number=settings.twilio_phone_number,
        )


def reset_notification_service() -> None:
    """Clear the cached service instance."""
    get_notification_service.cache_clear()


__all__ = [
    "get_notification_service",
    "reset_notification_service",
    "BaseNotificationService",
    "NotificationResult",
    "NotificationDispatcher",
    "QueuedNotificationDispatcher",
    "MockNotificationService",
    "RealNotificationService",
    "build_status_message",
    "format_phone_number",
]
