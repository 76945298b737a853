from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from ledger.config import settings

# Do not log SQL statement parameters by default: transaction descriptions
# end up in bound parameters.
async_engine = create_async_engine(
    settings.database_url,
    echo=(settings.db_echo if settings.app_env.lower() == "development" else False),
    future=True,
)

AsyncSessionLocal = async_sessionmaker(
    async_engine, class_=AsyncSession, expire_on_commit=False
)


async def get_db() -> AsyncSession:
    async with AsyncSessionLocal() as session:
        yield session


async def init_models() -> None:
    """Create missing tables. Used at startup for local SQLite databases."""
    from ledger.models.base import BaseModel

    async with async_engine.begin() as conn:
        await conn.run_sync(BaseModel.metadata.create_all)
