from __future__ import annotations

from functools import lru_cache

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from lingolearn.config import get_settings
from lingolearn.db.models import Base


@lru_cache(maxsize=1)
def get_engine() -> AsyncEngine:
    """
    Return the process-wide async engine for DATABASE_URL.

    Created on first use so that importing this module never needs a
    database driver or a reachable server.
    """
    return create_async_engine(
        get_settings().database_url,
        echo=False,
        future=True,
    )


@lru_cache(maxsize=1)
def get_sessionmaker() -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=get_engine(),
        expire_on_commit=False,
        class_=AsyncSession,
    )


async def create_all() -> None:
    """Create missing tables. Production schemas are managed by Alembic."""
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

