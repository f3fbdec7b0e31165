"""
Subscription Registry

In-memory map of order id → live connections following that order.
Every method is synchronous so a call completes without yielding to the
event loop; no locking is needed under a single asyncio loop.

The registry is process-local. Running several API processes would need
a shared pub/sub layer instead.
"""

import logging
from collections.abc import Hashable
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

C = TypeVar("C", bound=Hashable)


class SubscriptionRegistry(Generic[C]):
    """Tracks which connections care about which order ids."""

    def __init__(self) -> None:
        self._subscribers: dict[int, set[C]] = {}

    def subscribe(self, order_id: int, connection: C) -> None:
        """Add a connection to an order's subscriber set. Idempotent."""
        self._subscribers.setdefault(order_id, set()).add(connection)

    def unsubscribe_all(self, connection: C) -> list[int]:
        """
        Remove a connection from every order it follows.

        Entries left empty are dropped so the map does not grow with
        every order ever tracked.

        Returns:
            Order ids the connection was removed from
        """
        removed: list[int] = []
        for order_id in list(self._subscribers):
            connections = self._subscribers[order_id]
            if connection in connections:
                connections.discard(connection)
                removed.append(order_id)
                if not connections:
                    del self._subscribers[order_id]
        return removed

    def get_subscribers(self, order_id: int) -> frozenset[C]:
        """Snapshot of the current subscribers, empty if none."""
        return frozenset(self._subscribers.get(order_id, ()))

    @property
    def order_count(self) -> int:
        return len(self._subscribers)

    @property
    def subscription_count(self) -> int:
        return sum(len(c) for c in self._subscribers.values())

    @property
    def connection_count(self) -> int:
        """Distinct connections holding at least one subscription."""
        return len(set().union(*self._subscribers.values()))

    def clear(self) -> None:
        if self._subscribers:
            logger.info(
                f"Dropping {self.subscription_count} subscriptions "
                f"across {self.order_count} orders"
            )
        self._subscribers.clear()

    def __contains__(self, order_id: object) -> bool:
        return order_id in self._subscribers

    def __len__(self) -> int:
        return len(self._subscribers)
