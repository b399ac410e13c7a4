"""Async engine/session construction.

Nothing is created at import time: the API app and the scheduler each build
their own ``Database`` from settings and pass the session factory down.
"""

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)


@dataclass
class Database:
    engine: AsyncEngine
    session_factory: async_sessionmaker[AsyncSession]

    async def dispose(self) -> None:
        await self.engine.dispose()


def create_database(database_url: str, *, pool_size: int = 5) -> Database:
    engine = create_async_engine(
        database_url,
        echo=False,
        pool_size=pool_size,
        max_overflow=5,
        pool_pre_ping=True,
        pool_recycle=3600,
    )
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    return Database(engine=engine, session_factory=factory)
