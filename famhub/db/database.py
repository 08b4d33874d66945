"""
FamHub - Database Connection

One async engine per process. Request handlers get sessions through
get_db(); the exchange rate service and the seeder open their own from
async_session_maker.
"""
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from loguru import logger

from famhub.config import settings


def build_engine(url: str) -> AsyncEngine:
    """Async engine for ``url``; sqlite gets no pool sizing."""
    options = {"echo": False}
    if not url.startswith("sqlite"):
        options.update(pool_pre_ping=True, pool_size=10, max_overflow=20)
    return create_async_engine(url, **options)


engine = build_engine(settings.database_url)

async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)

Base = declarative_base()


async def init_db():
    """Create missing tables. Alembic owns schema changes after that."""
    # models register themselves on Base at import
    from famhub.db import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info(f"Database ready ({engine.url.get_backend_name()})")


async def get_db() -> AsyncSession:
    """Request-scoped session; commits when the handler returns cleanly."""
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
