"""
SQLAlchemy async engine and session management

Database owns one async engine plus its session maker. Every datetime column
uses UTCDateTime so values always come back timezone-aware, whatever the
backend does with offsets.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncGenerator, Optional

from sqlalchemy import DateTime
from sqlalchemy.engine import Dialect
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.types import TypeDecorator

from court_booking.platform.config.core_setting import settings
from court_booking.platform.logging.loguru_io import Logger


class Base(DeclarativeBase):
    pass


class UTCDateTime(TypeDecorator):
    """Store datetimes as UTC, return them as aware UTC datetimes"""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: Optional[datetime], dialect: Dialect) -> Any:
        if value is None:
            return None
        if value.tzinfo is None:
            raise ValueError('naive datetime cannot be stored')
        value = value.astimezone(timezone.utc)
        # SQLite keeps no offset; store every value in UTC so string order equals time order
        return value.replace(tzinfo=None) if dialect.name == 'sqlite' else value

    def process_result_value(self, value: Optional[datetime], dialect: Dialect) -> Any:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class Database:
    def __init__(self, *, url: Optional[str] = None, echo: Optional[bool] = None) -> None:
        self._url = url or settings.DATABASE_URL
        self._engine: AsyncEngine = create_async_engine(
            self._url,
            echo=settings.DATABASE_ECHO if echo is None else echo,
            future=True,
        )
        self._session_maker = async_sessionmaker(
            self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Session context; rolls back on exception"""
        async with self._session_maker() as session:
            yield session

    async def create_tables(self) -> None:
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all, checkfirst=True)
        Logger.base.info(f'🗄️ [DB] Tables ready on {self._engine.url.render_as_string()}')

    async def dispose(self) -> None:
        await self._engine.dispose()
