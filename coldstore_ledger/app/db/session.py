"""
Database session configuration.

Async SQLAlchemy engine and session factory. PostgreSQL (asyncpg) in
production; SQLite (aiosqlite) is accepted for local runs and tests, where
pool sizing does not apply and row locks are no-ops.
"""

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from coldstore_ledger.app.core.config import settings


def _engine_options(url: str) -> dict:
    options = {"echo": settings.db_echo}
    if url.startswith("sqlite"):
        options["connect_args"] = {"check_same_thread": False}
    else:
        options["pool_size"] = settings.db_pool_size
        options["max_overflow"] = settings.db_max_overflow
        options["pool_pre_ping"] = True
    return options


engine = create_async_engine(settings.database_url, **_engine_options(settings.database_url))

# Services flush; endpoints commit. Objects stay readable after commit.
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)

Base = declarative_base()


def dialect_insert(db: AsyncSession):
    """INSERT construct with ON CONFLICT support for the bound dialect."""
    if db.get_bind().dialect.name == "postgresql":
        return postgresql.insert
    return sqlite.insert


async def get_db():
    """
    FastAPI dependency yielding one session per request.

    The endpoint owns the transaction and commits on success; any error
    raised out of the endpoint rolls the whole unit of work back.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
