"""Pytest configuration and fixtures."""

from typing import Any
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import func, select

from talento_local.auth.security import create_access_token
from talento_local.commands.create_job import create_job
from talento_local.commands.submit_application import submit_application
from talento_local.db.models import OutboxEvent
from talento_local.db.session import Base, build_engine, build_sessionmaker
from talento_local.domain.models import Principal
from talento_local.domain.states import Role
from talento_local.main import create_app
from talento_local.settings import Settings

JOB_FIELDS: dict[str, Any] = {
    "title": "Fix leaking kitchen sink",
    "description": "The pipe under the kitchen sink leaks whenever the tap is open.",
    "category": "plumbing",
    "address": "Calle 10 # 43-12",
    "city": "Medellin",
    "department": "Antioquia",
}

APPLICATION_MESSAGE = "I have ten years of plumbing experience and can come today."


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        SQLALCHEMY_DATABASE_URI=f"sqlite+aiosqlite:///{tmp_path / 'talento_local.db'}",
        JWT_SECRET_KEY="test-only-secret",
        OUTBOX_ENABLED=False,
    )


@pytest_asyncio.fixture
async def engine(settings):
    engine = build_engine(settings)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def sessionmaker(engine):
    return build_sessionmaker(engine)


@pytest_asyncio.fixture
async def session(sessionmaker):
    async with sessionmaker() as session:
        yield session


@pytest.fixture
def app(settings, engine):
    return create_app(settings, engine=engine)


@pytest_asyncio.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


@pytest.fixture
def client_user():
    return Principal(user_id=uuid4(), role=Role.CLIENT)


@pytest.fixture
def other_client():
    return Principal(user_id=uuid4(), role=Role.CLIENT)


@pytest.fixture
def admin():
    return Principal(user_id=uuid4(), role=Role.ADMIN)


@pytest.fixture
def make_worker():
    def _make():
        return Principal(user_id=uuid4(), role=Role.WORKER)
    return _make


@pytest.fixture
def auth_headers(settings):
    """Builds an Authorization header for a principal."""
    def _headers(principal: Principal) -> dict[str, str]:
        token = create_access_token(settings, principal.user_id, principal.role)
        return {"Authorization": f"Bearer {token}"}
    return _headers


@pytest.fixture
def make_job(sessionmaker):
    """Creates and commits a job through the create_job command."""
    async def _make(owner: Principal, **overrides):
        async with sessionmaker() as session:
            job = await create_job(session, owner, {**JOB_FIELDS, **overrides})
            await session.commit()
            return job
    return _make


@pytest.fixture
def make_application(sessionmaker):
    """Creates and commits an application through the submit_application command."""
    async def _make(job_id, worker: Principal, **overrides):
        async with sessionmaker() as session:
            application = await submit_application(
                session, job_id, worker, overrides.pop("message", APPLICATION_MESSAGE), **overrides
            )
            await session.commit()
            return application
    return _make


@pytest.fixture
def outbox_count(sessionmaker):
    async def _count(**filters) -> int:
        async with sessionmaker() as session:
            stmt = select(func.count()).select_from(OutboxEvent).filter_by(**filters)
            return await session.scalar(stmt)
    return _count
