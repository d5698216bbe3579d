"""Persistence gateway: one explicitly constructed engine + session factory.

The application builds a ``Database`` at startup, connects it in the FastAPI
lifespan handler and disposes it on shutdown. Nothing here is created at
import time.
"""

from typing import Any, Optional

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from libs.common.config import Settings, get_settings
from libs.common.logging import get_logger
from libs.db.base import Base

logger = get_logger(__name__)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """Owns the async engine and hands out sessions."""

    def __init__(
        self,
        url: str,
        *,
        echo: bool = False,
        engine_options: Optional[dict[str, Any]] = None,
    ):
        self.url = url
        self.echo = echo
        self.engine_options = engine_options or {}
        self.engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker[AsyncSession]] = None

    @property
    def is_connected(self) -> bool:
        return self.engine is not None

    async def connect(self) -> None:
        """Create the engine and verify the database answers."""
        if self.engine is None:
            self.engine = create_async_engine(
                self.url,
                echo=self.echo,
                pool_pre_ping=True,  # Test connections before using
                **self.engine_options,
            )
            if self.url.startswith("sqlite"):
                event.listen(
                    self.engine.sync_engine, "connect", _enable_sqlite_foreign_keys
                )
            self._session_factory = async_sessionmaker(
                bind=self.engine,
                class_=AsyncSession,
                expire_on_commit=False,
                autoflush=False,
            )

        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        logger.info("Connected to database")

    async def disconnect(self) -> None:
        if self.engine is None:
            return
        await self.engine.dispose()
        self.engine = None
        self._session_factory = None
        logger.info("Disconnected from database")

    def session(self) -> AsyncSession:
        if self._session_factory is None:
            raise RuntimeError("Database is not connected; call connect() first")
        return self._session_factory()

    async def create_all(self) -> None:
        """Create every mapped table. Used by tests and the seed script."""
        if self.engine is None:
            raise RuntimeError("Database is not connected; call connect() first")
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)


def create_database(settings: Optional[Settings] = None) -> Database:
    """Build a ``Database`` from settings. Pool sizing only applies to pooled drivers."""
    settings = settings or get_settings()

    engine_options: dict[str, Any] = {}
    if not settings.uses_sqlite:
        engine_options = {
            "pool_size": settings.DB_POOL_SIZE,
            "max_overflow": settings.DB_MAX_OVERFLOW,
            "pool_timeout": settings.DB_POOL_TIMEOUT,
            "pool_recycle": settings.DB_POOL_RECYCLE,
        }

    return Database(
        settings.DATABASE_URL,
        echo=settings.DB_ECHO,
        engine_options=engine_options,
    )
