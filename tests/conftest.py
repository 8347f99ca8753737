"""
Pytest configuration and shared fixtures for testing.
Each test gets its own SQLite database file, a fake image store and an HTTP client.
"""

import os

# Must be set before any app imports: Settings picks its env file at class creation
os.environ["SKIP_ENV_FILE"] = "1"
os.environ["APP_ENV"] = "test"
os.environ.pop("ENABLE_METRICS", None)

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from inspiration_gallery.config import Settings
from inspiration_gallery.context import AppContext
from inspiration_gallery.db import create_tables
from inspiration_gallery.errors import UpstreamError
from inspiration_gallery.main import create_app
from inspiration_gallery.storage import ImageStore

TEST_JWT_SECRET = "test-jwt-secret-key-minimum-32-characters"


def make_settings(db_path, **overrides) -> Settings:
    """Settings for an isolated SQLite database with rate limiting off."""
    values = {
        "DB_URL": f"sqlite+aiosqlite:///{db_path}",
        "JWT_SECRET_KEY": TEST_JWT_SECRET,
        "APP_ENV": "test",
        "RATE_LIMIT_ENABLED": False,
        "LOG_LEVEL": "WARNING",
        "CLOUDINARY_CLOUD_NAME": None,
        "CLOUDINARY_API_KEY": None,
        "CLOUDINARY_API_SECRET": None,
    }
    values.update(overrides)
    return Settings(**values)


class FakeImageStore(ImageStore):
    """In-memory stand-in for the image host."""

    def __init__(self, configured: bool = True, fail: bool = False):
        self.is_configured = configured
        self.fail = fail
        self.uploads = []
        self.closed = False

    async def upload(self, data, filename, content_type=None, folder=None):
        if self.fail:
            raise UpstreamError("Image upload failed", {"reason": "simulated outage"})
        self.uploads.append(
            {"data": data, "filename": filename, "content_type": content_type, "folder": folder}
        )
        return f"https://images.test/{folder}/{len(self.uploads)}-{filename}"

    async def close(self):
        self.closed = True


@pytest.fixture
def settings(tmp_path):
    return make_settings(tmp_path / "test.db")


@pytest.fixture
def image_store():
    return FakeImageStore()


@pytest_asyncio.fixture(scope="function")
async def context(settings, image_store):
    """AppContext on a fresh database with the schema created."""
    ctx = AppContext(settings, image_store=image_store)
    await create_tables(ctx.engine)
    yield ctx
    await ctx.close()


@pytest.fixture
def app(context):
    return create_app(context=context)


@pytest_asyncio.fixture(scope="function")
async def client(app):
    """Create a test HTTP client bound to the app (no network)."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        timeout=30.0,
    ) as ac:
        yield ac


@pytest.fixture
def sample_user():
    """Sample user data for testing."""
    return {
        "name": "Alice",
        "email": "alice@example.com",
        "password": "secret1",
    }


@pytest.fixture
def other_user():
    return {
        "name": "Bob",
        "email": "bob@example.com",
        "password": "hunter22",
    }


def use_session(client: AsyncClient, token: str) -> None:
    """Make the client act as the user owning ``token``."""
    client.cookies.clear()
    client.cookies.set("token", token)


async def register(client: AsyncClient, user: dict) -> str:
    """Register ``user`` and return the session token from the cookie."""
    response = await client.post("/api/register", json=user)
    assert response.status_code == 201, response.text
    token = response.cookies.get("token")
    assert token
    return token


@pytest_asyncio.fixture
async def auth_client(client, sample_user):
    """Client with an active session for ``sample_user``."""
    token = await register(client, sample_user)
    use_session(client, token)
    return client
