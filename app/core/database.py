from typing import AsyncIterator

import structlog
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base

logger = structlog.get_logger(__name__)

# SQLAlchemy Base class for models
Base = declarative_base()


class Database:
    """Store handle owning one engine and its session factory.

    Built once at process start (see ``app.main.lifespan``) and handed to
    request handlers through ``get_db``; disposed on shutdown.
    """

    def __init__(self, url: str, echo: bool = False):
        self.url = url
        engine_kwargs = {"echo": echo, "future": True}
        if not url.startswith("sqlite"):
            engine_kwargs.update(pool_pre_ping=True, pool_recycle=300)
        self.engine: AsyncEngine = create_async_engine(url, **engine_kwargs)
        self.session_factory = async_sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False
        )

    async def connect(self) -> None:
        """Verify the store is reachable."""
        try:
            async with self.engine.begin() as conn:
                await conn.execute(text("SELECT 1"))
            logger.info("Database connection initialized successfully")
        except Exception as e:
            logger.error("Failed to initialize database", exc_info=e)
            raise

    async def create_all(self) -> None:
        # Import models so every table is registered on Base.metadata
        from app import models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def drop_all(self) -> None:
        from app import models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    async def dispose(self) -> None:
        await self.engine.dispose()
        logger.info("Database connections closed")

    async def session(self) -> AsyncIterator[AsyncSession]:
        """Yield a request-scoped session, rolling back on error."""
        async with self.session_factory() as session:
            try:
                yield session
            except Exception as e:
                await session.rollback()
                logger.error("Database session error", exc_info=e)
                raise
            finally:
                await session.close()
