"""Async engine and per-request sessions for the library database."""
import logging
from typing import Any, AsyncGenerator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool

from app.core.config import Settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


def engine_options(url: str, pool_size: int) -> dict[str, Any]:
    """Pool settings for ``url``. SQLite and ``pool_size == 0`` run without a pool."""
    if pool_size == 0 or url.startswith("sqlite"):
        return {"poolclass": NullPool}
    return {
        "pool_size": pool_size,
        "max_overflow": 10,
        "pool_pre_ping": True,
        "pool_recycle": 300,
    }


class DatabaseManager:
    """Owns the engine for the app's lifetime and hands out request sessions."""

    def __init__(self):
        self._engine: AsyncEngine | None = None
        self._sessions: async_sessionmaker[AsyncSession] | None = None

    @property
    def is_initialized(self) -> bool:
        return self._engine is not None

    def init(self, settings: Settings) -> None:
        if self.is_initialized:
            logger.warning("Database already initialized")
            return

        url = settings.database_url_computed
        self._engine = create_async_engine(
            url,
            echo=settings.DB_ECHO,
            **engine_options(url, settings.DB_POOL_SIZE),
        )
        self._sessions = async_sessionmaker(self._engine, expire_on_commit=False, autoflush=False)
        logger.info(f"Database engine ready ({self._engine.dialect.name})")

    async def close(self) -> None:
        if self._engine is None:
            return
        await self._engine.dispose()
        self._engine = None
        self._sessions = None
        logger.info("Database engine disposed")

    async def ping(self) -> None:
        """Round-trip ``SELECT 1``. Raises whatever the driver raises."""
        if self._engine is None:
            raise RuntimeError("Database not initialized")
        async with self._engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """One session per request, committed when the handler returns."""
        if self._sessions is None:
            raise RuntimeError("Database not initialized")

        async with self._sessions() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise


db_manager = DatabaseManager()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async for session in db_manager.session():
        yield session
