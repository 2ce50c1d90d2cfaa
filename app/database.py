# python
"""Database engine and session utilities.

This module builds the asynchronous engine and session factory used by the
relational persistence backend. The engine is created once per adapter and
disposed when the adapter is closed.
"""
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine


def build_engine(database_url: str, pool_size: int = 10, echo: bool = False) -> AsyncEngine:
    """Create an async engine with a bounded connection pool.

    SQLite URLs use SQLAlchemy's default pool for the driver, which does not
    accept sizing arguments.
    """
    database_url = (database_url or "").strip()
    if not database_url:
        raise ValueError(
            "DATABASE_URL is not configured. Set it in the environment or .env file "
            "(e.g., DATABASE_URL=mysql+aiomysql://<user>:<pass>@<host>/<db>)."
        )

    url = make_url(database_url)
    options = {"echo": echo, "pool_pre_ping": True}
    if url.get_backend_name() != "sqlite":
        options["pool_size"] = pool_size
        options["max_overflow"] = 0

    return create_async_engine(url, **options)


def build_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, expire_on_commit=False)
