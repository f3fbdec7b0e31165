"""
Order Store Factory

Returns the SQL or in-memory order store based on ORDER_STORE_BACKEND.

Usage:
    from mex_orders.services.orders import create_order_store

    store = create_order_store()
    order = await store.get_order(42)

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging

from mex_orders.core.config import OrderStoreBackend, get_settings
from mex_orders.database import get_session_maker
from mex_orders.services.orders.base import BaseOrderStore
from mex_orders.services.orders.memory import MemoryOrderStore
from mex_orders.services.orders.sql import SqlOrderStore

logger = logging.getLogger(__name__)


def create_order_store() -> BaseOrderStore:
    """
    Build the configured order store.

    Not cached: the application constructs one store at startup and
    keeps it on app.state.
    """
    settings = get_settings()

    if settings.order_store_backend == OrderStoreBackend.MEMORY:
        logger.info("Order Store: Using MemoryOrderStore")
        return MemoryOrderStore()

    logger.info("Order Store: Using SqlOrderStore (PostgreSQL)")
    return SqlOrderStore(get_session_maker())


__all__ = [
    "create_order_store",
    "BaseOrderStore",
    "MemoryOrderStore",
    "SqlOrderStore",
]
