"""Test configuration and fixtures for the yuque mirror."""

import os

# Settings are read at import time, so the test environment must be in place first.
os.environ["ENVIRONMENT"] = "local"
os.environ["SQLITE_URI"] = ":memory:"
os.environ["SQLITE_ASYNC_PREFIX"] = "sqlite+aiosqlite:///"
os.environ["CREATE_TABLES_ON_STARTUP"] = "false"
os.environ["REMOTE_RETRY_BASE_DELAY"] = "0"

from typing import Dict  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402

from yuque_mirror.infrastructure.database.session import Base, async_session, enable_sqlite_foreign_keys  # noqa: E402
from yuque_mirror.infrastructure.logging import configure_testing_logging  # noqa: E402
from yuque_mirror.infrastructure.storage import LocalFileStore  # noqa: E402
from yuque_mirror.interfaces.api.dependencies import get_orchestrator  # noqa: E402
from yuque_mirror.interfaces.main import app  # noqa: E402
from yuque_mirror.modules import models  # noqa: E402,F401
from yuque_mirror.modules.preference.services import PreferenceService  # noqa: E402
from yuque_mirror.modules.sync.orchestrator import SyncOrchestrator  # noqa: E402

from fakes import FakeRemoteProvider, make_document  # noqa: E402

configure_testing_logging()


@pytest_asyncio.fixture(scope="function")
async def test_db_engine(tmp_path):
    """A fresh SQLite metadata store per test."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'metadata.db'}", echo=False)
    enable_sqlite_foreign_keys(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def session_factory(test_db_engine):
    return async_sessionmaker(test_db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory):
    """Create a test database session."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def sync_dir(tmp_path):
    path = tmp_path / "mirror"
    path.mkdir()
    return path


@pytest.fixture
def fake_remote() -> FakeRemoteProvider:
    remote = FakeRemoteProvider()
    remote.documents["book-1"] = [
        make_document("101", "Getting Started"),
        make_document("102", "Architecture"),
        make_document("103", "Runbook"),
    ]
    return remote


@pytest_asyncio.fixture
async def orchestrator(fake_remote, db_session, sync_dir) -> SyncOrchestrator:
    """Orchestrator over the fake remote, writing below ``sync_dir``."""
    await PreferenceService().set_preference("sync_directory", str(sync_dir), db_session)
    return SyncOrchestrator(fake_remote, store=LocalFileStore())


@pytest.fixture
def book_context() -> Dict[str, dict]:
    return {"book-1": {"user_login": "alice", "slug": "handbook", "name": "Engineering Handbook"}}


@pytest_asyncio.fixture(scope="function")
async def client(session_factory, orchestrator):
    """Test client where each request gets its own session on the test store."""
    app.dependency_overrides = {}

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[async_session] = override_get_db
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides = {}
