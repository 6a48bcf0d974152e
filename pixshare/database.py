from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import DeclarativeBase

from pixshare.cache import cache
from pixshare.config import settings

# Module-level engine so tests can swap in their own engine and session factory.
engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    pool_pre_ping=True,
)

async_session = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    pass


async def create_schema() -> None:
    """Create any missing tables.  Called at startup when ``CREATE_SCHEMA`` is set."""
    # Registers the mapped classes on Base.metadata.
    import pixshare.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_db():
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            cache.discard_pending(session)
            raise
        await cache.invalidate_committed(session)
