from typing import AsyncGenerator
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from workorders.core.config import DATABASE_URL, DB_TYPE
import ssl

Base = declarative_base()


def _engine_options() -> dict:
    if DB_TYPE != "postgres":
        return {}

    # SSL setup for hosted Postgres
    ssl_ctx = ssl.create_default_context()
    ssl_ctx.check_hostname = False
    ssl_ctx.verify_mode = ssl.CERT_NONE

    return {
        "pool_size": 5,
        "max_overflow": 10,
        "connect_args": {
            # Disable prepared statements (important for PgBouncer)
            "statement_cache_size": 0,
            "prepared_statement_cache_size": 0,
            "server_settings": {"prepareThreshold": "0"},
            "ssl": ssl_ctx,
        },
    }


def create_engine_for(url: str, **options):
    engine = create_async_engine(url, echo=False, future=True, **options)
    if url.startswith("sqlite"):
        # SQLite foreign key enforcement
        @event.listens_for(engine.sync_engine, "connect")
        def enable_sqlite_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()
    return engine


def create_session_factory(bind) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=bind,
        class_=AsyncSession,
        autoflush=False,
        expire_on_commit=False,
    )


engine = create_engine_for(DATABASE_URL, **_engine_options())
AsyncSessionLocal = create_session_factory(engine)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionLocal() as session:
        yield session


import workorders.models  # noqa: E402,F401


async def init_models(bind=None):
    """Create all tables defined in the models (dev / test convenience)."""
    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
