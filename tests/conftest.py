from contextlib import asynccontextmanager
from typing import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from app.main import app
from app.db.session import build_engine, get_db, init_models


TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@asynccontextmanager
async def _app_client(session_factory: async_sessionmaker) -> AsyncGenerator[AsyncClient, None]:
    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            yield ac
    finally:
        app.dependency_overrides.clear()


@pytest.fixture()
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Fresh in-memory database with all tables for each test."""
    engine = build_engine(TEST_DATABASE_URL)
    await init_models(bind=engine)
    yield engine
    await engine.dispose()


@pytest.fixture()
def session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture()
async def db_session(session_factory: async_sessionmaker) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture()
async def client(session_factory: async_sessionmaker) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the FastAPI app; each request gets its own session."""
    async with _app_client(session_factory) as ac:
        yield ac


@pytest.fixture()
async def file_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """
    File-backed database: every session gets its own connection, so uncommitted work in one
    session is invisible to the others. Use it when a test interleaves transactions.
    """
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'fees.db'}")
    await init_models(bind=engine)
    yield engine
    await engine.dispose()


@pytest.fixture()
def file_session_factory(file_engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(bind=file_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture()
async def file_client(file_session_factory: async_sessionmaker) -> AsyncGenerator[AsyncClient, None]:
    async with _app_client(file_session_factory) as ac:
        yield ac
