"""Async SQLAlchemy engine handle, declarative Base, and FastAPI dependencies.

The engine is never created at import time: :func:`create_database` is
called from the application lifespan and the resulting :class:`Database` is
stored on ``app.state.db``.
"""


from collections.abc import AsyncGenerator
from dataclasses import dataclass

from fastapi import Request
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

# ---------------------------------------------------------------------------
# Declarative Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """All ORM models inherit from this base."""

# ---------------------------------------------------------------------------
# Engine + session factory
# ---------------------------------------------------------------------------
@dataclass
class Database:
    engine: AsyncEngine
    session_factory: async_sessionmaker[AsyncSession]

    async def create_tables(self) -> None:
        """Create all tables (local development and tests)."""
        import onboarding.domain  # noqa: F401  (registers every model)

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        await self.engine.dispose()


def create_database(database_url: str, echo: bool = False) -> Database:
    engine_kwargs: dict = {
        "pool_pre_ping": True,
        "echo": echo,
    }

    # SQLite (local dev) doesn't support connection pooling parameters
    if database_url.startswith("sqlite"):
        engine_kwargs["connect_args"] = {"check_same_thread": False}

    engine = create_async_engine(database_url, **engine_kwargs)
    session_factory = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
        autocommit=False,
    )
    return Database(engine=engine, session_factory=session_factory)

# ---------------------------------------------------------------------------
# FastAPI dependencies
# ---------------------------------------------------------------------------
def get_session_factory(request: Request) -> async_sessionmaker[AsyncSession]:
    """Session factory for work that must own its transactions (bulk, background)."""
    return request.app.state.db.session_factory


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Yield an async database session; roll back on error."""
    async with request.app.state.db.session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
