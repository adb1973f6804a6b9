import logging
from contextlib import asynccontextmanager
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from pronto.infrastructure.db_schema import metadata
from pronto.infrastructure.repositories import (
    SQLAlchemyOrderRepository,
    SQLAlchemyUserRepository,
)

logger = logging.getLogger(__name__)


def build_engine(database_url: str) -> AsyncEngine:
    return create_async_engine(database_url, pool_pre_ping=True)


async def create_schema(engine: AsyncEngine) -> None:
    """Создать таблицы orders и users, если их нет"""
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
    logger.info("Таблицы созданы")


class SQLAlchemyUnitOfWork:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    @classmethod
    def from_engine(cls, engine: AsyncEngine) -> "SQLAlchemyUnitOfWork":
        return cls(async_sessionmaker(engine, expire_on_commit=False))

    @asynccontextmanager
    async def __call__(self):
        async with self._session_factory() as session:
            try:
                yield _SQLAlchemyUnitOfWorkImpl(session)
            finally:
                # Незакоммиченные изменения отбрасываются
                await session.rollback()


class _SQLAlchemyUnitOfWorkImpl:
    def __init__(self, session: AsyncSession):
        self._session = session
        self.orders = SQLAlchemyOrderRepository(session)
        self.users = SQLAlchemyUserRepository(session)

    async def commit(self):
        await self._session.commit()

    async def rollback(self):
        await self._session.rollback()
