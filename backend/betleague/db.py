import os
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, AsyncEngine, create_async_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import NullPool, StaticPool


engine: Optional[AsyncEngine] = None
AsyncSessionLocal: Optional[sessionmaker] = None
Base = declarative_base()


def get_engine() -> AsyncEngine:
    """Return a lazily created SQLAlchemy engine.

    The engine is created on first use from the ``DATABASE_URL`` environment
    variable, so importing this module has no side effects. A
    ``RuntimeError`` is raised only when the engine is requested without
    ``DATABASE_URL`` being configured.
    """

    global engine, AsyncSessionLocal

    if engine is None:
        database_url = os.getenv("DATABASE_URL")
        if not database_url:
            raise RuntimeError("DATABASE_URL environment variable is required")

        for scheme in ("postgresql://", "postgres://"):
            if database_url.startswith(scheme):
                database_url = database_url.replace(scheme, "postgresql+asyncpg://", 1)
                break

        engine_kwargs = {"echo": False}

        if database_url.startswith("sqlite+aiosqlite://"):
            # In-memory SQLite must reuse the same connection to keep its schema.
            if ":memory:" in database_url:
                engine_kwargs["poolclass"] = StaticPool
            else:
                engine_kwargs["poolclass"] = NullPool
        else:
            engine_kwargs["pool_pre_ping"] = True

        engine = create_async_engine(database_url, **engine_kwargs)
        AsyncSessionLocal = sessionmaker(
            engine, class_=AsyncSession, expire_on_commit=False
        )

    return engine


def get_session_factory() -> sessionmaker:
    """Return the session factory bound to the lazily created engine."""

    if AsyncSessionLocal is None:
        get_engine()

    assert AsyncSessionLocal is not None  # for type checkers
    return AsyncSessionLocal


async def dispose_engine() -> None:
    """Close pooled connections and forget the engine.

    The next ``get_engine`` call builds a fresh engine from ``DATABASE_URL``.
    """

    global engine, AsyncSessionLocal

    if engine is not None:
        await engine.dispose()
    engine = None
    AsyncSessionLocal = None
