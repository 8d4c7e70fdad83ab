"""
Async SQLAlchemy engine + session factory.

Production runs on PostgreSQL through the asyncpg driver; tests point
DATABASE_URL at aiosqlite. The engine is created once at import and reused
across all requests.
"""
import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from petfinder.config import settings

logger = logging.getLogger(__name__)


def _engine_options(url: str) -> dict:
    # SQLite pools reject sizing arguments
    if url.startswith("sqlite"):
        return {"echo": False}
    return {"pool_pre_ping": True, "pool_size": 20, "max_overflow": 10, "echo": False}


engine = create_async_engine(settings.sqlalchemy_url, **_engine_options(settings.sqlalchemy_url))

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    pass


async def init_db() -> None:
    """Create all tables if they don't exist (idempotent)."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables initialised")


async def get_db():
    """FastAPI dependency that yields an async DB session."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
