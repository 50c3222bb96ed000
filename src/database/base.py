"""Database connection and session management."""

from typing import AsyncGenerator, Optional
from loguru import logger
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    create_async_engine,
    async_sessionmaker,
    AsyncEngine,
)
from sqlalchemy.pool import NullPool
from sqlalchemy.orm import DeclarativeBase

from src.config.settings import Settings, get_settings


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


class DatabaseManager:
    """
    Менеджер подключения к PostgreSQL (Supabase) для SQL-хранилища заказов.
    Один экземпляр на процесс.
    """

    _instance: Optional["DatabaseManager"] = None
    _engine: Optional[AsyncEngine] = None
    _session_maker: Optional[async_sessionmaker] = None

    def __new__(cls):
        """Singleton pattern для гарантированного единственного instance."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    async def initialize(self, settings: Optional[Settings] = None) -> None:
        """
        Инициализировать подключение.
        Вызывать один раз при запуске приложения.
        """
        if self._engine is not None:
            logger.warning("DatabaseManager already initialized")
            return

        settings = settings or get_settings()
        db_url = settings.sqlalchemy_url
        if not db_url:
            raise RuntimeError(
                "SQL order store selected but no database configured. "
                "Set DATABASE_URL or SUPABASE_PASSWORD/SUPABASE_HOST in .env"
            )

        engine_kwargs = {"echo": settings.database_echo}
        if settings.environment == "test":
            engine_kwargs["poolclass"] = NullPool
        elif not db_url.startswith("sqlite"):
            engine_kwargs.update(
                pool_size=10,
                max_overflow=5,
                pool_pre_ping=True,  # Проверять соединения перед использованием
                pool_recycle=3600,
            )

        try:
            self._engine = create_async_engine(db_url, **engine_kwargs)
            self._session_maker = async_sessionmaker(
                self._engine,
                class_=AsyncSession,
                expire_on_commit=False,
                autoflush=False,
            )
            logger.info("✓ Database connection initialized")
        except Exception as e:
            logger.error(f"Failed to initialize database: {e}")
            raise

    async def close(self) -> None:
        """Корректно закрыть все соединения."""
        if self._engine:
            await self._engine.dispose()
            self._engine = None
            self._session_maker = None
            logger.info("✓ Database connections closed")

    @property
    def session_maker(self) -> async_sessionmaker:
        if self._session_maker is None:
            raise RuntimeError("DatabaseManager not initialized. Call initialize() first.")
        return self._session_maker

    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Получить асинхронную сессию БД с commit/rollback.

        Пример:
            async for session in db_manager.get_session():
                order = await session.get(Order, order_id)
        """
        async with self.session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception as e:
                await session.rollback()
                logger.error(f"Database transaction error: {e}")
                raise

    async def create_tables(self) -> None:
        """Создать все таблицы (для development/testing)."""
        if self._engine is None:
            raise RuntimeError("DatabaseManager not initialized")

        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
            logger.info("✓ All tables created")

    async def check_connection(self) -> bool:
        """SELECT 1 через текущий engine."""
        if self._engine is None:
            return False
        try:
            async with self._engine.connect() as conn:
                result = await conn.execute(text("SELECT 1"))
                return result.scalar() == 1
        except Exception as e:
            logger.error(f"Database connection check failed: {e}")
            return False

    def is_initialized(self) -> bool:
        """Проверить, инициализирован ли DatabaseManager."""
        return self._engine is not None


# Global instance
db_manager = DatabaseManager()
