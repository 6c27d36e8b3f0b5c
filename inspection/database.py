import os

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from inspection.config import settings


class Base(DeclarativeBase):
    pass


def normalize_database_url(url: str) -> str:
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql+asyncpg://", 1)
    elif url.startswith("postgresql://"):
        url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return url


def _set_sqlite_pragma(dbapi_conn, connection_record):
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(database_url: str) -> AsyncEngine:
    """Create the async engine for ``database_url`` (sqlite or postgres)."""
    url = make_url(normalize_database_url(database_url))
    if url.get_backend_name() != "sqlite":
        return create_async_engine(url, echo=False, pool_size=5, max_overflow=10, pool_pre_ping=True)

    if url.database in (None, "", ":memory:"):
        # in-memory databases live on a single shared connection
        engine = create_async_engine(
            url, echo=False, poolclass=StaticPool, connect_args={"check_same_thread": False}
        )
    else:
        engine = create_async_engine(url, echo=False)
    event.listen(engine.sync_engine, "connect", _set_sqlite_pragma)
    return engine


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


engine = build_engine(settings.database_url)
async_session = build_session_factory(engine)


async def create_tables(bind: AsyncEngine | None = None):
    bind = bind or engine
    database = bind.url.database
    if bind.url.get_backend_name() == "sqlite" and database not in (None, "", ":memory:"):
        os.makedirs(os.path.dirname(os.path.abspath(database)), exist_ok=True)
    async with bind.begin() as conn:
        from inspection.models import assessment, photo, damage, comparison  # noqa: F401
        await conn.run_sync(Base.metadata.create_all)
