"""Fixtures: one in-memory SQLite database per test, plus an ASGI client over it."""

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine

from rollout.config import settings
from rollout.db.engine import create_session_factory, create_tables


@pytest.fixture(autouse=True)
def passcode_off(monkeypatch):
    """Keep the passcode gate off unless a test turns it on, whatever .env says."""
    monkeypatch.setattr(settings, "enable_passcode", False)
    monkeypatch.setattr(settings, "passcode", None)


@pytest.fixture
async def db_engine():
    engine = create_async_engine("sqlite+aiosqlite:///", echo=False)
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
async def file_engine(tmp_path):
    """File-backed SQLite engine; each session gets its own connection, so writers really race."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'rollout.db'}", echo=False)
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session(db_engine):
    async with create_session_factory(db_engine)() as session:
        yield session


@pytest.fixture
def app(db_engine):
    """Application wired to the test engine; lifespan is not run under ASGITransport."""
    from rollout.main import create_app

    _app = create_app()
    _app.state.db_engine = db_engine
    _app.state.db_session_factory = create_session_factory(db_engine)
    return _app


@pytest.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
