from contextlib import asynccontextmanager
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from storefront.infrastructure.repositories import (
    SQLAlchemyUserRepository,
    SQLAlchemyProductRepository,
    SQLAlchemyCartRepository,
    SQLAlchemyOrderRepository,
    SQLAlchemyStoreSettingsRepository,
)


class UnitOfWork:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    @asynccontextmanager
    async def __call__(self):
        async with self._session_factory() as session:
            try:
                yield _UnitOfWorkImpl(session)
                # Anything not committed explicitly is discarded
                await session.rollback()
            except Exception:
                await session.rollback()
                raise


class _UnitOfWorkImpl:
    def __init__(self, session: AsyncSession):
        self._session = session
        self.users = SQLAlchemyUserRepository(session)
        self.products = SQLAlchemyProductRepository(session)
        self.carts = SQLAlchemyCartRepository(session)
        self.orders = SQLAlchemyOrderRepository(session)
        self.store_settings = SQLAlchemyStoreSettingsRepository(session)

    async def commit(self):
        await self._session.commit()

    async def rollback(self):
        await self._session.rollback()
