"""
Database engine configuration and session management.

The URL comes from DATABASE_URL; SQLite via aiosqlite by default, any other
async driver (e.g. postgresql+asyncpg) works without code changes here.
"""
from collections.abc import AsyncGenerator
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool

from orgroles.core import config

engine = create_async_engine(
    config.SQLALCHEMY_DATABASE_URL,
    # NullPool for SQLite to avoid connection pool issues
    poolclass=NullPool if config.SQLALCHEMY_DATABASE_URL.startswith("sqlite") else None,
    echo=False,
    future=True,
)


def enable_sqlite_savepoints(async_engine: AsyncEngine) -> None:
    """
    Hand transaction control on SQLite to SQLAlchemy.

    The sqlite3 driver defers BEGIN until the first write, so a SAVEPOINT
    could open (and its RELEASE commit) the outer transaction. Bulk
    operations rely on per-item savepoints nested in the request transaction.
    """
    @event.listens_for(async_engine.sync_engine, "connect")
    def do_connect(dbapi_connection, _connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(async_engine.sync_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")


if config.SQLALCHEMY_DATABASE_URL.startswith("sqlite"):
    enable_sqlite_savepoints(engine)


AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency for getting async database sessions.

    The session is committed when the request handler returns and rolled
    back if it raises.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def init_db():
    """
    Create all tables. Called on application startup.
    """
    from orgroles.core.database.base import Base

    # Import all models to ensure they're registered with SQLAlchemy
    from orgroles.features.users.models import User  # noqa: F401
    from orgroles.features.organizations.models import Organization  # noqa: F401
    from orgroles.features.roles.models import OrganizationRole  # noqa: F401
    from orgroles.features.audit.models import AdminEvent  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
