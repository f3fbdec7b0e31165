"""
SQLAlchemy Database Models

Orders placed through the web menu, picked up and paid in cash at the
restaurant. The status column follows the kitchen workflow shown to the
customer on the order tracking page.

Author: Khalil Bannouri
Version: 1.0.0
"""

import enum

from sqlalchemy import Column, Integer, String, Float, DateTime, Text, JSON
from sqlalchemy.sql import func

from mex_orders.database import Base


class OrderStatus(str, enum.Enum):
    """Order status workflow."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES

    def can_transition_to(self, new_status: "OrderStatus") -> bool:
        """Check a move against the kitchen workflow."""
        return new_status in ALLOWED_TRANSITIONS[self]


TERMINAL_STATUSES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED})

# Forward path pending → confirmed → preparing → ready → delivered,
# cancelled from any non-terminal state. Re-applying the current
# status is allowed so a repeated admin click is harmless.
ALLOWED_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({
        OrderStatus.PENDING, OrderStatus.CONFIRMED, OrderStatus.CANCELLED,
    }),
    OrderStatus.CONFIRMED: frozenset({
        OrderStatus.CONFIRMED, OrderStatus.PREPARING, OrderStatus.CANCELLED,
    }),
    OrderStatus.PREPARING: frozenset({
        OrderStatus.PREPARING, OrderStatus.READY, OrderStatus.CANCELLED,
    }),
    OrderStatus.READY: frozenset({
        OrderStatus.READY, OrderStatus.DELIVERED, OrderStatus.CANCELLED,
    }),
    OrderStatus.DELIVERED: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.CANCELLED: frozenset({OrderStatus.CANCELLED}),
}


class Order(Base):
    """
    Main Order table - stores all web orders.

    Tracks the lifecycle from checkout to pickup.
    """
    __tablename__ = "orders"

    # Primary Key
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # =========================================================================
    # CUSTOMER INFORMATION
    # =========================================================================
    customer_name = Column(String(100), nullable=False)
    customer_email = Column(String(255), nullable=True)
    customer_phone = Column(String(20), nullable=False, index=True)

    # =========================================================================
    # ADDRESS
    # =========================================================================
    delivery_address = Column(String(255), nullable=False)
    city = Column(String(50), nullable=False)
    zip_code = Column(String(10), nullable=False)
    delivery_instructions = Column(Text, nullable=True)

    # =========================================================================
    # ORDER DETAILS
    # =========================================================================
    items = Column(JSON, nullable=False)  # Serialized cart items

    # =========================================================================
    # PRICING
    # =========================================================================
    subtotal = Column(Float, nullable=False)
    delivery_fee = Column(Float, nullable=False, default=0.0)
    tax = Column(Float, nullable=False)
    total = Column(Float, nullable=False)

    # =========================================================================
    # ORDER STATUS
    # =========================================================================
    status = Column(
        String(20),
        default=OrderStatus.PENDING.value,
        nullable=False,
        index=True
    )

    # Optional link to the users table for signed-in customers
    user_id = Column(Integer, nullable=True, index=True)

    # =========================================================================
    # TIMESTAMPS
    # =========================================================================
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self):
        return f"<Order #{self.id} - {self.customer_name} - {self.status}>"
