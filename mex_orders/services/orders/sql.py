"""
PostgreSQL Order Store

Order persistence through the SQLAlchemy async engine. Each call opens
its own short-lived session so the store can be shared by HTTP routes
and WebSocket handlers alike.

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
from typing import Optional

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from mex_orders.database import dispose_engine
from mex_orders.models import Order, OrderStatus
from mex_orders.schemas import OrderCreate, OrderResponse
from mex_orders.services.orders.base import BaseOrderStore

logger = logging.getLogger(__name__)


class SqlOrderStore(BaseOrderStore):
    """Order store backed by the orders table."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self._session_maker = session_maker

    @property
    def backend_name(self) -> str:
        return "postgresql"

    async def get_order(self, order_id: int) -> Optional[OrderResponse]:
        async with self._session_maker() as session:
            order = await session.get(Order, order_id)
            if order is None:
                return None
            return OrderResponse.model_validate(order)

    async def update_status(self, order_id: int, status: str) -> Optional[OrderResponse]:
        async with self._session_maker() as session:
            async with session.begin():
                result = await session.execute(
                    select(Order).where(Order.id == order_id).with_for_update()
                )
                order = result.scalar_one_or_none()
                if order is None:
                    return None
                order.status = status
            await session.refresh(order)
            logger.debug(f"Order #{order_id} status written: {status}")
            return OrderResponse.model_validate(order)

    async def create_order(self, data: OrderCreate) -> OrderResponse:
        async with self._session_maker() as session:
            new_order = Order(
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
            )
            session.add(new_order)
            await session.commit()
            await session.refresh(new_order)
            return OrderResponse.model_validate(new_order)

    async def list_orders(self, status: Optional[str] = None) -> list[OrderResponse]:
        query = select(Order).order_by(Order.created_at.desc())
        if status:
            query = query.where(Order.status == status)

        async with self._session_maker() as session:
            result = await session.execute(query)
            return [OrderResponse.model_validate(o) for o in result.scalars().all()]

    async def delete_order(self, order_id: int) -> bool:
        async with self._session_maker() as session:
            result = await session.execute(delete(Order).where(Order.id == order_id))
            await session.commit()
            return result.rowcount > 0

    async def health_check(self) -> bool:
        try:
            async with self._session_maker() as session:
                await session.execute(select(func.now()))
            return True
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return False

    async def close(self) -> None:
        await dispose_engine()
