"""
Database Infrastructure
=======================

Engine and session lifecycle for SQLAlchemy 2.0 async.

Production runs on PostgreSQL through asyncpg; tests and local runs may
point ``DATABASE_URL`` at ``sqlite+aiosqlite``. Two session helpers exist:

- ``get_session``: FastAPI dependency, one session per request
- ``get_session_context``: one short unit of work, used by the triage
  store so that each pipeline step commits on its own
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from ticket_assistant.config import settings


class Base(DeclarativeBase):
    """Declarative base shared by the accounts and tickets models."""


_engine: AsyncEngine | None = None
_session_maker: async_sessionmaker[AsyncSession] | None = None


def _engine_options(url: str) -> tuple[str, Dict[str, Any]]:
    options: Dict[str, Any] = {"echo": settings.debug}
    if url.startswith("sqlite"):
        options["connect_args"] = {"check_same_thread": False}
        return url, options

    # asyncpg spells the libpq sslmode parameter as ssl
    options.update(
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_pre_ping=True,
    )
    return url.replace("sslmode=", "ssl="), options


def get_engine() -> AsyncEngine:
    if _engine is None:
        raise RuntimeError("Database engine not initialized. Call init_database() first.")
    return _engine


def _require_session_maker() -> async_sessionmaker[AsyncSession]:
    if _session_maker is None:
        raise RuntimeError("Database not initialized. Call init_database() first.")
    return _session_maker


def init_database(database_url: Optional[str] = None) -> AsyncEngine:
    """
    Create the engine and session factory.

    Called from the app lifespan with the configured URL; tests pass their
    own. Calling it again replaces the previous engine without disposing it.
    """
    global _engine, _session_maker

    url, options = _engine_options(database_url or settings.database_url)
    _engine = create_async_engine(url, **options)
    _session_maker = async_sessionmaker(
        bind=_engine,
        class_=AsyncSession,
        expire_on_commit=False,  # entities are mapped after commit
        autoflush=False,
    )
    return _engine


async def close_database() -> None:
    global _engine, _session_maker

    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_maker = None


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session: commits after the handler returns, rolls back on error."""
    async with _require_session_maker()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def get_session_context() -> AsyncGenerator[AsyncSession, None]:
    """
    One unit of work outside a request.

    Usage:
        async with get_session_context() as session:
            await session.execute(update(TicketModel)...)
    """
    async with _require_session_maker()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def ping_database() -> bool:
    async with get_session_context() as session:
        await session.execute(text("SELECT 1"))
    return True


async def create_tables() -> None:
    """Create missing tables. Development and tests only; production uses migrations."""
    import ticket_assistant.accounts.infrastructure.models  # noqa: F401
    import ticket_assistant.tickets.infrastructure.models  # noqa: F401

    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
