from typing import AsyncIterator

from fastapi import Request
from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import DeclarativeBase

from talento_local.settings import Settings

class Base(DeclarativeBase):
    pass

def build_engine(settings: Settings) -> AsyncEngine:
    url = make_url(settings.SQLALCHEMY_DATABASE_URI)
    kwargs = {"echo": False, "pool_pre_ping": True}

    if url.get_backend_name() == "postgresql":
        kwargs.update(
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            # asyncpg applies these per connection; a blocked FOR UPDATE gives up
            # after lock_timeout instead of queueing behind a stalled transaction.
            connect_args={
                "server_settings": {
                    "lock_timeout": str(settings.DB_LOCK_TIMEOUT_MS),
                    "statement_timeout": str(settings.DB_STATEMENT_TIMEOUT_MS),
                }
            },
        )

    engine = create_async_engine(url, **kwargs)

    if url.get_backend_name() == "sqlite":
        # ON DELETE CASCADE is off by default in SQLite
        @event.listens_for(engine.sync_engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine

def build_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

async def get_db_session(request: Request) -> AsyncIterator[AsyncSession]:
    sessionmaker: async_sessionmaker[AsyncSession] = request.app.state.sessionmaker
    async with sessionmaker() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
