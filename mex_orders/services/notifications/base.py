"""
Notification Service Abstract Base Class

Defines interface for sending customer SMS notifications.
Supports both Mock (development) and Real (production) implementations.

Author: Khalil Bannouri
Version: 1.0.0
"""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from mex_orders.models import OrderStatus
from mex_orders.schemas import OrderResponse


@dataclass
class NotificationResult:
    """Result from sending a notification."""
    success: bool
    message_id: Optional[str] = None
    error_message: Optional[str] = None
    provider: str = "unknown"


STATUS_MESSAGES: dict[str, str] = {
    OrderStatus.CONFIRMED.value: (
        "{restaurant}: Your order #{order_id} has been confirmed and will be prepared shortly."
    ),
    OrderStatus.PREPARING.value: (
        "{restaurant}: Good news! Your order #{order_id} is now being prepared by our chefs."
    ),
    OrderStatus.READY.value: (
        "{restaurant}: Your order #{order_id} is now ready for pickup! "
        "Please come to the restaurant to collect your food."
    ),
    OrderStatus.DELIVERED.value: (
        "{restaurant}: Your order #{order_id} has been marked as delivered. "
        "Enjoy your meal and thank you for choosing us!"
    ),
    OrderStatus.CANCELLED.value: (
        "{restaurant}: We're sorry, but your order #{order_id} has been cancelled. "
        "Please contact us for more information."
    ),
}

DEFAULT_STATUS_MESSAGE = "{restaurant}: Your order #{order_id} status has been updated to: {status}."


def build_status_message(order_id: int, status: str, restaurant: str) -> str:
    """Customer-facing SMS text for a status change."""
    template = STATUS_MESSAGES.get(status, DEFAULT_STATUS_MESSAGE)
    return template.format(restaurant=restaurant, order_id=order_id, status=status)


def format_phone_number(phone: str) -> str:
    """
    Normalize a phone number to E.164 for the SMS provider.

    10 digits are treated as a US number, 11 digits starting with 1 as a
    US number with country code; anything else just gets a leading +.
    """
    digits = re.sub(r"\D", "", phone)

    if len(digits) == 11 and digits.startswith("1"):
        return f"+{digits}"
    if len(digits) == 10:
        return f"+1{digits}"
    return f"+{digits}"


class BaseNotificationService(ABC):
    """Abstract base class for notification services."""

    def __init__(self, restaurant_name: str):
        self.restaurant_name = restaurant_name

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name."""
        pass

    @abstractmethod
    async def send_sms(
        self,
        to_phone: str,
        message: str,
    ) -> NotificationResult:
        """Send an SMS message."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Check service connectivity."""
        pass

    async def send_order_status(
        self,
        order: OrderResponse,
        status: str,
    ) -> NotificationResult:
        """Text the customer that their order moved to a new status."""
        if not order.customer_phone:
            return NotificationResult(
                success=False,
                error_message=f"No phone number on order #{order.id}",
                provider=self.provider_name,
            )

        message = build_status_message(order.id, status, self.restaurant_name)
        return await self.send_sms(format_phone_number(order.customer_phone), message)
