from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from vatofotsy_api.config import settings

_connect_args = {"ssl": "require"} if settings.database_ssl else {}

engine = create_async_engine(settings.effective_database_url, connect_args=_connect_args)
async_session_maker = async_sessionmaker(engine, expire_on_commit=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_maker() as session:
        yield session
