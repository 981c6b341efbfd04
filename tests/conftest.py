import sys
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

# Ensure project root is on sys.path
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from pocket_cdn.core.config import Settings, get_settings
from pocket_cdn.db import session as db_session
from pocket_cdn.main import create_app
from pocket_cdn.services import storage as storage_service


@pytest.fixture
def configure_environment(tmp_path, monkeypatch):
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    monkeypatch.setenv("STORAGE_BACKEND", "local")
    monkeypatch.setenv("LOCAL_STORAGE_DIR", str(tmp_path / "storage"))
    for name in ("API_KEY", "VIEW_LIST_WITH_PASS", "UPLOAD_LINK_TTL_HOURS"):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    db_session.reset_session_factory()
    storage_service.reset_storage_service()
    yield
    get_settings.cache_clear()
    db_session.reset_session_factory()
    storage_service.reset_storage_service()


@pytest_asyncio.fixture
async def database(configure_environment):
    await db_session.init_models()
    yield
    await db_session.dispose_engine()


@pytest_asyncio.fixture
async def session(database):
    async with db_session.get_session_factory()() as session:
        yield session


@pytest.fixture
def storage(configure_environment):
    return storage_service.get_storage_service()


@pytest.fixture
def app_instance(configure_environment):
    return create_app()


@pytest.fixture
def configure(app_instance):
    """Inject settings into request handlers, e.g. ``configure(API_KEY="secret")``."""

    def _configure(**values) -> Settings:
        settings = Settings(**values)
        app_instance.dependency_overrides[get_settings] = lambda: settings
        return settings

    return _configure


@pytest_asyncio.fixture
async def client(app_instance, database, storage):
    transport = ASGITransport(app=app_instance)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client
