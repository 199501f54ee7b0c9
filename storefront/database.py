from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from storefront.config import settings
from storefront.infrastructure.db_schema import metadata

engine = create_async_engine(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)
async_session_maker = async_sessionmaker(engine, expire_on_commit=False)


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    return async_session_maker


async def create_tables() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
