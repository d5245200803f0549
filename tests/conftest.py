"""Shared pytest fixtures for sopgraph tests."""

import pytest
from httpx import ASGITransport, AsyncClient

from sopgraph.db.connection import Database
from sopgraph.main import app
from sopgraph.projects.router import get_project_service
from sopgraph.projects.service import ProjectService
from sopgraph.storage.documents import ProjectStore
from sopgraph.storage.history import VersionLog
from sopgraph.transfer.router import get_transfer_service
from sopgraph.transfer.service import TransferService


@pytest.fixture
async def db():
    """In-memory database for tests."""
    database = await Database.connect(":memory:")
    yield database
    await database.close()


@pytest.fixture
async def project_store(db):
    """ProjectStore backed by in-memory database."""
    return ProjectStore(db)


@pytest.fixture
async def version_log(db):
    """VersionLog backed by in-memory database."""
    return VersionLog(db)


@pytest.fixture
async def service(db):
    """ProjectService without autosave; tests drive ticks by hand."""
    svc = ProjectService(db)
    yield svc
    await svc.close()


@pytest.fixture
async def client(service):
    """Async test client with in-memory DB wired into the app."""
    transfer = TransferService(service)
    app.dependency_overrides[get_project_service] = lambda: service
    app.dependency_overrides[get_transfer_service] = lambda: transfer
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client
    app.dependency_overrides.clear()
