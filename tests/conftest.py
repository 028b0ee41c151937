import os
from collections.abc import AsyncGenerator

import httpx
import pytest
import pytest_asyncio

# Required settings must exist before callrelay.main builds the app.
_TEST_ENV = {
    "LOGIN_PASSWORD": "letmein",
    "JWT_SECRET": "test-access-secret",
    "REFRESH_TOKEN_SECRET": "test-refresh-secret",
    "VAPID_PUBLIC_KEY": "test-vapid-public",
    "VAPID_PRIVATE_KEY": "test-vapid-private",
    "VAPID_CONTACT_EMAIL": "ops@example.com",
    "CLIENT_URL": "https://client.example.com",
}
for _key, _value in _TEST_ENV.items():
    os.environ.setdefault(_key, _value)

from callrelay.config import Settings, override_settings  # noqa: E402
from callrelay.main import app, build_services  # noqa: E402
from callrelay.storage.store import JsonFileStore  # noqa: E402


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        state_dir=str(tmp_path),
        login_password="letmein",
        jwt_secret="test-access-secret",
        refresh_token_secret="test-refresh-secret",
        vapid_public_key="test-vapid-public",
        vapid_private_key="test-vapid-private",
        vapid_contact_email="ops@example.com",
        client_url="https://client.example.com",
    )


@pytest.fixture(autouse=True)
def _test_settings(settings):
    """Override settings so tests use an isolated data file."""
    override_settings(settings)
    yield
    override_settings(None)


@pytest.fixture
def store(tmp_path) -> JsonFileStore:
    return JsonFileStore(tmp_path / "data.json")


@pytest_asyncio.fixture
async def client(settings) -> AsyncGenerator[httpx.AsyncClient]:
    """Async test client with real services on app.state."""
    build_services(app, settings)
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
