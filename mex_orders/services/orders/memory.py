"""
In-Memory Order Store

Keeps orders in a dict for local runs without PostgreSQL and for tests.
Nothing survives a restart.

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
from datetime import datetime, timezone
from typing import Iterable, Optional

from mex_orders.models import OrderStatus
from mex_orders.schemas import OrderCreate, OrderResponse
from mex_orders.services.orders.base import BaseOrderStore

logger = logging.getLogger(__name__)


class MemoryOrderStore(BaseOrderStore):
    """Process-local order store."""

    def __init__(self, orders: Optional[Iterable[OrderResponse]] = None):
        self._orders: dict[int, OrderResponse] = {}
        for order in orders or ():
            self._orders[order.id] = order
        self._next_id = max(self._orders, default=0) + 1
        logger.info(f"MemoryOrderStore initialized ({len(self._orders)} orders)")

    @property
    def backend_name(self) -> str:
        return "memory"

    async def get_order(self, order_id: int) -> Optional[OrderResponse]:
        return self._orders.get(order_id)

    async def update_status(self, order_id: int, status: str) -> Optional[OrderResponse]:
        order = self._orders.get(order_id)
        if order is None:
            return None

        updated = order.model_copy(
            update={"status": status, "updated_at": datetime.now(timezone.utc)}
        )
        self._orders[order_id] = updated
        return updated

    async def create_order(self, data: OrderCreate) -> OrderResponse:
        order = OrderResponse(
            id=self._next_id,
            customer_name=data.customer_name,
            customer_email=data.customer_email,
            customer_phone=data.customer_phone,
            delivery_address=data.delivery_address,
            city=data.city,
            zip_code=data.zip_code,
            delivery_instructions=data.delivery_instructions,
            items=[item.model_dump(by_alias=True) for item in data.items],
            subtotal=data.subtotal,
            delivery_fee=data.delivery_fee,
            tax=data.tax,
            total=data.total,
            status=OrderStatus.PENDING.value,
            user_id=data.user_id,
            created_at=datetime.now(timezone.utc),
        )
        self._orders[order.id] = order
        self._next_id += 1
        return order

    async def list_orders(self, status: Optional[str] = None) -> list[OrderResponse]:
        orders = [o for o in self._orders.values() if not status or o.status == status]
        return sorted(orders, key=lambda o: o.created_at, reverse=True)

    async def delete_order(self, order_id: int) -> bool:
        return self._orders.pop(order_id, None) is not None

    async def health_check(self) -> bool:
        return True
