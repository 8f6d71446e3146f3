"""Database engine and session management — no global state."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.pool import AsyncAdaptedQueuePool, NullPool, StaticPool
from sqlmodel.ext.asyncio.session import AsyncSession

from onehitter.models.otp import PendingOtp


def create_engine(database_url: str, *, single_connection: bool = False) -> AsyncEngine:
    """Create async engine with dialect-appropriate settings.

    Supports PostgreSQL (asyncpg) and SQLite (aiosqlite). The engine returned
    here is what callers pass as the durable storage handle; they own its
    lifecycle and call ``dispose()`` themselves.

    Args:
        single_connection: SQLite only. Keep one connection for the life of the
            engine (required for in-memory databases, used by the embedded adapter).
    """
    if database_url.startswith("sqlite"):
        keep_one = single_connection or ":memory:" in database_url
        kwargs = dict(
            poolclass=StaticPool if keep_one else NullPool,
            connect_args={"check_same_thread": False},
        )
    else:
        kwargs = dict(
            poolclass=AsyncAdaptedQueuePool,
            pool_size=5,
            max_overflow=10,
            pool_pre_ping=True,
            pool_recycle=3600,
        )

    return create_async_engine(database_url, echo=False, **kwargs)


def sqlite_url(path: str) -> str:
    """Async SQLite URL for a file path or ``:memory:``."""
    return f"sqlite+aiosqlite:///{path}"


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create an async session factory bound to the given engine."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@asynccontextmanager
async def get_session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession]:
    """One unit of work: commits on success, rolls back and re-raises on error."""
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def ensure_schema(engine: AsyncEngine) -> None:
    """Create the OTP table and its indexes if they do not exist yet.

    Not a migration tool: an existing table is left untouched.
    """
    async with engine.begin() as conn:
        await conn.run_sync(_create_tables)


def _create_tables(connection) -> None:
    PendingOtp.__table__.create(connection, checkfirst=True)
