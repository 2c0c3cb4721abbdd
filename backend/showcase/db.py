from __future__ import annotations

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from .settings import get_settings

settings = get_settings()


class Base(DeclarativeBase):
    """Base declarative class for showcase tables."""


def engine_options(url: str) -> dict[str, Any]:
    """Driver-specific engine arguments (SQLite is used for local runs and tests)."""
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True}


engine = create_async_engine(
    settings.async_database_url,
    echo=False,
    **engine_options(settings.async_database_url),
)
AsyncSessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_session() -> AsyncSession:
    async with AsyncSessionLocal() as session:
        yield session


def dialect_name(session: AsyncSession) -> str:
    """``postgresql`` or ``sqlite``; picks the upsert construct."""
    return session.get_bind().dialect.name
