"""
DocuMind - Shared Test Fixtures
Provides reusable fixtures for users, database, authenticated clients and a
fake generative-text service.
"""

import os
from typing import AsyncGenerator, Optional

import pytest
from httpx import AsyncClient, ASGITransport

# Configure test environment BEFORE importing app
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./test_documind.db"
os.environ["INTELLIGENCE_SCHEDULER_ENABLED"] = "false"
os.environ["GEMINI_API_KEY"] = ""
os.environ["APP_TIMEZONE"] = "UTC"
os.environ["LOG_LEVEL"] = "WARNING"

from app.main import app
from app.core.config import get_settings
from app.core.errors import ExternalServiceError
from app.services.ai_service import get_ai_service
from app.services.text_extraction import get_text_extractor


# =============================================================================
# Fakes
# =============================================================================

class FakeAIService:
    """
    Stands in for the Gemini client.

    `text` is returned by generate(); `chunks` are yielded by stream(). With
    `fail_after=n` the stream raises after n chunks; `error` makes generate() raise.
    """

    def __init__(self):
        self.text = "[]"
        self.chunks = ["Hello", " world"]
        self.fail_after: Optional[int] = None
        self.error: Optional[Exception] = None
        self.prompts: list[dict] = []
        self.streams: list[dict] = []

    @property
    def is_available(self) -> bool:
        return True

    async def generate(self, prompt, search=False, model=None):
        self.prompts.append({"prompt": prompt, "search": search})
        if self.error is not None:
            raise self.error
        return self.text

    async def stream(self, messages, system=None, model=None):
        self.streams.append({"messages": list(messages), "system": system})
        for i, chunk in enumerate(self.chunks):
            if self.fail_after is not None and i >= self.fail_after:
                raise ExternalServiceError("stream broke")
            yield chunk
        if self.fail_after is not None and self.fail_after >= len(self.chunks):
            raise ExternalServiceError("stream broke")


class FailingExtractor:
    """Extractor whose every call raises."""

    def extract(self, content, file_type):
        raise RuntimeError("corrupt document")


# =============================================================================
# Core Fixtures
# =============================================================================

@pytest.fixture
def anyio_backend():
    """Use asyncio for async tests."""
    return "asyncio"


@pytest.fixture
def settings():
    return get_settings()


@pytest.fixture
async def setup_test_database():
    """Create database tables before each test and clean up after."""
    from app.core.database import get_engine, Base
    from app.models import models  # noqa: F401  Import all models to register them

    engine = get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
async def db(setup_test_database):
    """A session on the test database."""
    from app.core.database import get_session_factory

    async with get_session_factory()() as session:
        yield session


async def _create_user(db, user_id: str, **fields):
    from app.models.models import User

    user = User(id=user_id, **fields)
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


@pytest.fixture
def make_user():
    """`await make_user(db, user_id, **fields)` inserts a user row."""
    return _create_user


@pytest.fixture
async def alice(db):
    return await _create_user(db, "alice", first_name="Alice", last_name="Chen", email="alice@example.com")


@pytest.fixture
async def bob(db):
    return await _create_user(db, "bob", first_name="Bob", last_name="Li", email="bob@example.com")


@pytest.fixture
async def admin_user(db):
    return await _create_user(db, "admin", first_name="Ada", role="admin")


@pytest.fixture
async def client_for(setup_test_database) -> AsyncGenerator:
    """Factory for clients carrying a given user's session cookie."""
    cookie_name = get_settings().session_cookie_name
    clients: list[AsyncClient] = []

    def factory(user_id: Optional[str] = None) -> AsyncClient:
        cookies = {cookie_name: user_id} if user_id else {}
        ac = AsyncClient(transport=ASGITransport(app=app), base_url="http://test", cookies=cookies)
        clients.append(ac)
        return ac

    yield factory

    for ac in clients:
        await ac.aclose()


@pytest.fixture
async def client(client_for, alice) -> AsyncClient:
    """Client authenticated as alice."""
    return client_for(alice.id)


@pytest.fixture
async def admin_client(client_for, admin_user) -> AsyncClient:
    return client_for(admin_user.id)


@pytest.fixture
def fake_ai():
    """Install a fake generative-text service for the request path."""
    fake = FakeAIService()
    app.dependency_overrides[get_ai_service] = lambda: fake
    yield fake
    app.dependency_overrides.pop(get_ai_service, None)


@pytest.fixture
def failing_extractor():
    app.dependency_overrides[get_text_extractor] = lambda: FailingExtractor()
    yield
    app.dependency_overrides.pop(get_text_extractor, None)
