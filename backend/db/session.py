"""
FlowLogic Database Session Management

The API shares the module-level engine. Celery tasks and scripts call
build_engine() for their own and dispose it when the run ends, since each
asyncio.run() starts a fresh event loop.
"""

from typing import Any

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from core.config import Settings, get_settings


def engine_options(database_url: str, settings: Settings | None = None) -> dict[str, Any]:
    """
    Keyword arguments for create_async_engine.

    Pool sizing is left out for SQLite, whose in-memory pools reject it.
    """
    settings = settings or get_settings()
    options: dict[str, Any] = {"echo": settings.database_echo, "pool_pre_ping": True}
    if make_url(database_url).get_backend_name() != "sqlite":
        options["pool_size"] = settings.database_pool_size
        options["max_overflow"] = settings.database_max_overflow
    return options


def build_engine(database_url: str | None = None) -> AsyncEngine:
    settings = get_settings()
    url = database_url or settings.database_url
    return create_async_engine(url, **engine_options(url, settings))


def session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


engine = build_engine()
AsyncSessionLocal = session_factory(engine)


class Base(DeclarativeBase):
    """Declarative base for all SQLAlchemy models."""
    pass
