"""
Order Tracking Exceptions

Expected failures of the order-status pipeline. Store-level errors
propagate to the admin caller; real-time delivery and SMS errors are
contained inside the pipeline and only logged.
"""

from typing import Optional


class OrderTrackingError(Exception):
    """Base class for all order tracking errors."""


class OrderNotFoundError(OrderTrackingError):
    """The referenced order does not exist in the store."""

    def __init__(self, order_id: int):
        self.order_id = order_id
        super().__init__(f"Order #{order_id} not found")


class InvalidStatusError(OrderTrackingError, ValueError):
    """A status value outside the order status enumeration."""

    def __init__(self, status: object):
        self.status = status
        super().__init__(f"Invalid status value: {status!r}")


class InvalidStatusTransitionError(OrderTrackingError):
    """A status change not allowed by the transition table."""

    def __init__(self, order_id: int, current: str, requested: str):
        self.order_id = order_id
        self.current = current
        self.requested = requested
        super().__init__(
            f"Order #{order_id} cannot move from '{current}' to '{requested}'"
        )


class MalformedMessageError(OrderTrackingError):
    """An inbound WebSocket frame that cannot be understood."""

    def __init__(self, reason: str, raw: Optional[str] = None):
        self.reason = reason
        self.raw = raw
        super().__init__(reason)


class NotificationFailure(OrderTrackingError):
    """An out-of-band customer message could not be delivered."""


class StaleConnectionError(OrderTrackingError):
    """A send was attempted on a connection that is no longer open."""
