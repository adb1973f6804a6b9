"""Документное хранилище в памяти процесса.

Записи хранятся как JSON-документы. Один экземпляр InMemoryStore создается
при старте и передается всем компонентам.
"""
import asyncio
import logging
import random
from contextlib import asynccontextmanager
from typing import Dict, List, Optional, Tuple

from pronto.application.interfaces import OrderRepository, UserRepository
from pronto.domain.exceptions import ConcurrentUpdateError, OrderNotFoundError
from pronto.domain.models import Order, OrderStatus, UserRecord

logger = logging.getLogger(__name__)


class InMemoryStore:
    def __init__(self, latency_min_ms: int = 0, latency_max_ms: int = 0):
        self.orders: Dict[str, dict] = {}
        self.users: Dict[str, dict] = {}
        self._latency_min_ms = latency_min_ms
        self._latency_max_ms = latency_max_ms

    async def latency(self) -> None:
        """Имитация сетевой задержки"""
        if self._latency_max_ms > 0:
            delay_ms = random.randint(self._latency_min_ms, self._latency_max_ms)
            await asyncio.sleep(delay_ms / 1000)


class InMemoryOrderRepository(OrderRepository):
    def __init__(self, store: InMemoryStore):
        self._store = store
        # order_id -> (документ, (версия, статус), на которых он основан)
        self._pending: Dict[str, Tuple[dict, Optional[Tuple[int, str]]]] = {}

    def _current(self, order_id: str) -> Optional[dict]:
        if order_id in self._pending:
            return self._pending[order_id][0]
        return self._store.orders.get(order_id)

    async def get_by_id(self, order_id: str) -> Optional[Order]:
        await self._store.latency()
        doc = self._current(order_id)
        return Order.model_validate(doc) if doc else None

    async def list(
        self,
        client_id: Optional[str] = None,
        business_id: Optional[str] = None,
        delivery_person_id: Optional[str] = None,
        status: Optional[OrderStatus] = None,
    ) -> List[Order]:
        await self._store.latency()
        ids = set(self._store.orders) | set(self._pending)
        orders = [Order.model_validate(self._current(order_id)) for order_id in ids]
        if client_id:
            orders = [o for o in orders if o.client_id == client_id]
        if business_id:
            orders = [o for o in orders if o.business_id == business_id]
        if delivery_person_id:
            orders = [o for o in orders if o.delivery_person_id == delivery_person_id]
        if status:
            orders = [o for o in orders if o.status == status]
        return sorted(orders, key=lambda o: o.created_at, reverse=True)

    async def create(self, order: Order) -> None:
        await self._store.latency()
        self._pending[order.id] = (order.model_dump(mode="json"), None)

    async def save(self, order: Order, expected_status: OrderStatus) -> Order:
        await self._store.latency()
        current = self._current(order.id)
        if current is None:
            raise OrderNotFoundError(f"Заказ {order.id} не найден")
        if current["status"] != expected_status.value:
            raise ConcurrentUpdateError(order.id, expected_status, OrderStatus(current["status"]))

        base = (current["version"], current["status"])
        if order.id in self._pending:
            base = self._pending[order.id][1]
        saved = order.model_copy(update={"version": current["version"] + 1})
        self._pending[order.id] = (saved.model_dump(mode="json"), base)
        return saved

    def flush(self) -> None:
        # Сначала проверяем все версии, потом пишем: либо все, либо ничего
        for order_id, (doc, base) in self._pending.items():
            if base is None:
                continue
            base_version, base_status = base
            committed = self._store.orders.get(order_id)
            if committed is None:
                raise OrderNotFoundError(f"Заказ {order_id} не найден")
            if committed["version"] != base_version:
                logger.warning(f"Конфликт версий заказа {order_id}: {base_version} != {committed['version']}")
                raise ConcurrentUpdateError(order_id, OrderStatus(base_status), OrderStatus(committed["status"]))
        for order_id, (doc, _) in self._pending.items():
            self._store.orders[order_id] = doc
        self._pending.clear()

    def discard(self) -> None:
        self._pending.clear()


class InMemoryUserRepository(UserRepository):
    def __init__(self, store: InMemoryStore):
        self._store = store
        self._pending: Dict[str, dict] = {}

    def _all(self) -> Dict[str, dict]:
        return {**self._store.users, **self._pending}

    async def get_by_id(self, user_id: str) -> Optional[UserRecord]:
        await self._store.latency()
        doc = self._all().get(user_id)
        return UserRecord.model_validate(doc) if doc else None

    async def get_by_email(self, email: str) -> Optional[UserRecord]:
        await self._store.latency()
        for doc in self._all().values():
            if doc["email"].lower() == email.lower():
                return UserRecord.model_validate(doc)
        return None

    async def list(self) -> List[UserRecord]:
        await self._store.latency()
        return [UserRecord.model_validate(doc) for doc in self._all().values()]

    async def create(self, user: UserRecord) -> None:
        await self._store.latency()
        self._pending[user.id] = user.model_dump(mode="json")

    async def save(self, user: UserRecord) -> None:
        await self._store.latency()
        self._pending[user.id] = user.model_dump(mode="json")

    def flush(self) -> None:
        self._store.users.update(self._pending)
        self._pending.clear()

    def discard(self) -> None:
        self._pending.clear()


class InMemoryUnitOfWork:
    def __init__(self, store: InMemoryStore):
        self._store = store

    @asynccontextmanager
    async def __call__(self):
        uow_impl = _InMemoryUnitOfWorkImpl(self._store)
        try:
            yield uow_impl
        finally:
            # Если commit не вызван, изменения отбрасываются
            await uow_impl.rollback()


class _InMemoryUnitOfWorkImpl:
    def __init__(self, store: InMemoryStore):
        self._store = store
        self.orders = InMemoryOrderRepository(store)
        self.users = InMemoryUserRepository(store)

    async def commit(self):
        await self._store.latency()
        self.orders.flush()
        self.users.flush()

    async def rollback(self):
        self.orders.discard()
        self.users.discard()
