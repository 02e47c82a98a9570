"""Shared fixtures: an app on a throwaway SQLite database and a raw session."""
import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from api.main import create_fastapi_app
from api.shared.entities import registry
from core.settings import (
    AppSettings,
    ClientSettings,
    CorsSettings,
    PgDbSettings,
    RateLimitSettings,
    Settings,
)
from infra.resources import DatabaseResource


def make_settings(tmp_path, **overrides) -> Settings:
    app = overrides.pop("app", {})
    rate_limit = overrides.pop("rate_limit", {})
    return Settings(
        APP=AppSettings(**{"ENVIRONMENT": "local", "LOG_LEVEL": "WARNING", **app}),
        DATABASE=PgDbSettings(
            DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'agrichat.db'}",
            CREATE_TABLES=True,
        ),
        RATE_LIMIT=RateLimitSettings(
            **{"RATE_LIMIT_ENABLED": True, "RATE_LIMIT_WRITES": "100 per 15 minutes", **rate_limit}
        ),
        CORS=CorsSettings(),
        CLIENT=ClientSettings(),
    )


@pytest.fixture
def settings(tmp_path) -> Settings:
    return make_settings(tmp_path)


@pytest.fixture
def client(settings):
    app = create_fastapi_app(settings)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def create_conversation(client):
    def _create(title=None):
        body = {} if title is None else {"title": title}
        response = client.post("/api/conversations", json=body)
        assert response.status_code == 201, response.text
        return response.json()["data"]

    return _create


@pytest.fixture
def add_message(client):
    def _add(conversation_id, content, message_type="user"):
        response = client.post(
            f"/api/conversations/{conversation_id}/messages",
            json={"content": content, "type": message_type},
        )
        assert response.status_code == 201, response.text
        return response.json()["data"]

    return _add


@pytest_asyncio.fixture
async def db_session(tmp_path):
    db = DatabaseResource(f"sqlite+aiosqlite:///{tmp_path / 'repo.db'}")
    await db.init()
    await db.create_tables(registry.metadata)
    session = db.get_session()
    try:
        yield session
    finally:
        await session.close()
        await db.shutdown()


@pytest.fixture
def client_factory(tmp_path):
    """Build a client for an app with overridden settings; server errors become responses."""
    opened = []

    def _build(**overrides):
        app = create_fastapi_app(make_settings(tmp_path, **overrides))
        test_client = TestClient(app, raise_server_exceptions=False)
        test_client.__enter__()
        opened.append(test_client)
        return test_client

    yield _build
    for test_client in opened:
        test_client.__exit__(None, None, None)
