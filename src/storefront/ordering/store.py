"""OrderStore: owns Order aggregates and serializes writers per order.

At most one writer may hold an order at a time: ``writing()`` takes the
order's lock, loads the aggregate, yields it for mutation and persists it on
a clean exit. Orders with different ids never wait on each other. Readers do
not take the lock and always see the last committed state.
"""

import asyncio
import weakref
from contextlib import asynccontextmanager

from protean.exceptions import ObjectNotFoundError

from storefront.domain import logger, storefront
from storefront.exceptions import NotFoundError
from storefront.ordering.order import Order


class OrderStore:
    def __init__(self, domain=storefront):
        self._domain = domain
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

    def lock_for(self, order_id: str) -> asyncio.Lock:
        lock = self._locks.get(order_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[order_id] = lock
        return lock

    def _repository(self):
        return self._domain.repository_for(Order)

    def _load(self, order_id: str) -> Order:
        with self._domain.domain_context():
            try:
                return self._repository().get(order_id)
            except ObjectNotFoundError:
                raise NotFoundError("Order", order_id) from None

    def _save(self, order: Order) -> None:
        with self._domain.domain_context():
            self._repository().add(order)

    @asynccontextmanager
    async def writing(self, order_id: str):
        """Hold the single-writer lock for ``order_id`` around a load-mutate-save cycle.

        The aggregate is persisted only if the block exits without raising.
        """
        lock = self.lock_for(order_id)
        async with lock:
            order = self._load(order_id)
            yield order
            self._save(order)
            logger.debug("Order saved", order_id=order_id, status=order.status)

    async def add(self, order: Order) -> Order:
        async with self.lock_for(str(order.id)):
            self._save(order)
        return order

    async def get(self, order_id: str) -> Order:
        return self._load(order_id)

    async def list_orders(self, status: str | None = None) -> list[Order]:
        with self._domain.domain_context():
            repo = self._repository()
            orders = repo.with_status(status) if status else repo.all_orders()
        return sorted(orders, key=lambda order: order.created_at)
