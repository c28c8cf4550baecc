"""
Hafez Quraan Backend — Database Engine & Session Management
=============================================================

What:  Async SQLAlchemy engine/session factories, the per-request session
       dependency, and small helpers shared by the services.
How:   The engine and session factory are built inside the FastAPI lifespan
       (see main.py) and stored on `app.state`. Route handlers receive a
       session through `Depends(get_db_session)`; nothing here holds a
       module-level connection pool.
Who:   main.py (lifecycle), route handlers (sessions), services (helpers).

Connection Pooling Strategy:
    pool_size=10, max_overflow=5 are sized for a small single-instance API.
    SQLite engines skip pool arguments entirely (they use their own pool class).
"""

from datetime import datetime, timezone
from typing import AsyncGenerator, Optional

from fastapi import Request
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from hafez_api.config import Settings
from hafez_api.exceptions import StorageError


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    All models inherit from this class so they share one metadata object,
    which Alembic reads for autogenerate and tests use for create_all().
    """
    pass


# ── Engine & Session Factories ────────────────────────────────────────────
def build_engine(settings: Settings) -> AsyncEngine:
    """
    Create the async engine for the configured database.

    Raises:
        ValueError: DATABASE_URL is missing (startup treats this as fatal).
    """
    settings.validate_required()
    url = settings.database_url

    kwargs = {"echo": settings.log_level == "DEBUG"}
    if not url.startswith("sqlite"):
        kwargs.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=settings.db_pool_pre_ping,
            pool_recycle=3600,
        )
    return create_async_engine(url, **kwargs)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # expire_on_commit=False: services read attributes after committing
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


# ── Session Dependency ────────────────────────────────────────────────────
async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    How it works:
        1. Creates a new session from the factory stored on app.state
        2. Yields it to the route handler
        3. On success: commits anything the service left pending
        4. On error: rolls back
        5. Always: closes the session (returns connection to pool)

    Write services commit explicitly so that storage failures surface inside
    the handler as StorageError; the commit here is then a no-op.
    """
    factory: async_sessionmaker[AsyncSession] = request.app.state.session_factory
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# ── Helpers ───────────────────────────────────────────────────────────────
def dialect_insert(db: AsyncSession, model):
    """
    Return the dialect-specific INSERT construct for `model`.

    What:  postgresql.insert / sqlite.insert both expose on_conflict_do_update
           and on_conflict_do_nothing, which the generic insert() does not.
    Raises:
        StorageError: the bound database has no upsert support here.
    """
    dialect_name = db.get_bind().dialect.name
    if dialect_name == "postgresql":
        return postgresql.insert(model)
    if dialect_name == "sqlite":
        return sqlite.insert(model)
    raise StorageError(
        message=f"Upsert is not supported for the '{dialect_name}' database dialect",
        context={"dialect": dialect_name},
    )


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes (SQLite returns them) and convert aware ones."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
