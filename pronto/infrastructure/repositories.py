from typing import Optional, List
from sqlalchemy import func, select, insert, update
from sqlalchemy.ext.asyncio import AsyncSession

from pronto.domain.models import Order, OrderStatus, UserRecord
from pronto.domain.exceptions import ConcurrentUpdateError, OrderNotFoundError
from pronto.infrastructure.db_schema import orders_tbl, users_tbl
from pronto.application.interfaces import OrderRepository, UserRepository


class SQLAlchemyOrderRepository(OrderRepository):
    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_id(self, order_id: str) -> Optional[Order]:
        result = await self._session.execute(
            select(orders_tbl).where(orders_tbl.c.id == order_id)
        )
        row = result.fetchone()
        return self._to_domain(row) if row else None

    async def list(
        self,
        client_id: Optional[str] = None,
        business_id: Optional[str] = None,
        delivery_person_id: Optional[str] = None,
        status: Optional[OrderStatus] = None,
    ) -> List[Order]:
        stmt = select(orders_tbl)
        if client_id:
            stmt = stmt.where(orders_tbl.c.client_id == client_id)
        if business_id:
            stmt = stmt.where(orders_tbl.c.business_id == business_id)
        if delivery_person_id:
            stmt = stmt.where(orders_tbl.c.delivery_person_id == delivery_person_id)
        if status:
            stmt = stmt.where(orders_tbl.c.status == status.value)
        result = await self._session.execute(stmt.order_by(orders_tbl.c.created_at.desc()))
        return [self._to_domain(row) for row in result.fetchall()]

    async def create(self, order: Order) -> None:
        stmt = insert(orders_tbl).values(**self._to_row(order))
        await self._session.execute(stmt)

    async def save(self, order: Order, expected_status: OrderStatus) -> Order:
        current = await self._session.execute(
            select(orders_tbl.c.version).where(orders_tbl.c.id == order.id)
        )
        version = current.scalar_one_or_none()
        if version is None:
            raise OrderNotFoundError(f"Заказ {order.id} не найден")

        saved = order.model_copy(update={"version": version + 1})
        stmt = (
            update(orders_tbl)
            .where(
                orders_tbl.c.id == order.id,
                orders_tbl.c.status == expected_status.value,
                orders_tbl.c.version == version,
            )
            .values(**self._to_row(saved))
        )
        result = await self._session.execute(stmt)
        if result.rowcount == 0:
            actual = await self._session.execute(
                select(orders_tbl.c.status).where(orders_tbl.c.id == order.id)
            )
            raise ConcurrentUpdateError(order.id, expected_status, OrderStatus(actual.scalar_one()))
        return saved

    def _to_row(self, order: Order) -> dict:
        return {
            "id": order.id,
            "client_id": order.client_id,
            "business_id": order.business_id,
            "delivery_person_id": order.delivery_person_id,
            "status": order.status.value,
            "version": order.version,
            "document": order.model_dump(mode="json"),
            "created_at": order.created_at,
            "updated_at": order.updated_at,
        }

    def _to_domain(self, row) -> Order:
        """Трансформация DB → Domain"""
        order = Order.model_validate(row.document)
        return order.model_copy(update={"status": OrderStatus(row.status), "version": row.version})


class SQLAlchemyUserRepository(UserRepository):
    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_id(self, user_id: str) -> Optional[UserRecord]:
        result = await self._session.execute(
            select(users_tbl).where(users_tbl.c.id == user_id)
        )
        row = result.fetchone()
        return self._to_domain(row) if row else None

    async def get_by_email(self, email: str) -> Optional[UserRecord]:
        result = await self._session.execute(
            select(users_tbl).where(func.lower(users_tbl.c.email) == email.lower())
        )
        row = result.fetchone()
        return self._to_domain(row) if row else None

    async def list(self) -> List[UserRecord]:
        result = await self._session.execute(select(users_tbl).order_by(users_tbl.c.email))
        return [self._to_domain(row) for row in result.fetchall()]

    async def create(self, user: UserRecord) -> None:
        await self._session.execute(insert(users_tbl).values(**self._to_row(user)))

    async def save(self, user: UserRecord) -> None:
        stmt = (
            update(users_tbl)
            .where(users_tbl.c.id == user.id)
            .values(**self._to_row(user))
        )
        await self._session.execute(stmt)

    def _to_row(self, user: UserRecord) -> dict:
        return {
            "id": user.id,
            "email": user.email,
            "role": user.role.value,
            "is_active": user.is_active,
            "document": user.model_dump(mode="json"),
        }

    def _to_domain(self, row) -> UserRecord:
        return UserRecord.model_validate(row.document)
