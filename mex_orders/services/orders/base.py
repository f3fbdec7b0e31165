"""
Order Store Abstract Base Class

Defines the interface contract for order persistence. The real-time
tracking pipeline only needs get_order and update_status; the remaining
methods back the plain order API.

Design Pattern: Strategy Pattern
    - SqlOrderStore talks to PostgreSQL through SQLAlchemy
    - MemoryOrderStore keeps orders in the process (local runs, tests)

Author: Khalil Bannouri
Version: 1.0.0
"""

from abc import ABC, abstractmethod
from typing import Optional

from mex_orders.schemas import OrderCreate, OrderResponse


class BaseOrderStore(ABC):
    """Abstract base class for order stores."""

    @property
    @abstractmethod
    def backend_name(self) -> str:
        """Return the backend name."""
        pass

    @abstractmethod
    async def get_order(self, order_id: int) -> Optional[OrderResponse]:
        """Fetch one order, or None if it does not exist."""
        pass

    @abstractmethod
    async def update_status(self, order_id: int, status: str) -> Optional[OrderResponse]:
        """
        Atomically overwrite an order's status.

        Returns:
            The updated order, or None if it does not exist
        """
        pass

    @abstractmethod
    async def create_order(self, data: OrderCreate) -> OrderResponse:
        """Persist a new order in the pending state."""
        pass

    @abstractmethod
    async def list_orders(self, status: Optional[str] = None) -> list[OrderResponse]:
        """List orders, newest first."""
        pass

    @abstractmethod
    async def delete_order(self, order_id: int) -> bool:
        """Delete an order. Returns False if it did not exist."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Check backend connectivity."""
        pass

    async def close(self) -> None:
        """Release backend resources at shutdown."""
        return None
