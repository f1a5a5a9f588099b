from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from campus_exchange.config import Settings


class Base(DeclarativeBase):
    pass


def build_engine(settings: Settings) -> AsyncEngine:
    # Convert postgresql:// to postgresql+asyncpg://
    url = settings.database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if url.startswith("sqlite"):
        return create_async_engine(url, echo=False)
    return create_async_engine(
        url,
        echo=False,
        pool_pre_ping=True,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        expire_on_commit=False,
        autoflush=False,
    )


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes returned by drivers without timezone support."""
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)
