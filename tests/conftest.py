import os
import uuid
from collections.abc import AsyncGenerator
from datetime import datetime, timedelta

import httpx
import pytest
import pytz

# Set test environment before any service module reads it
os.environ["ENVIRONMENT"] = "test"
os.environ["SKIP_SCHEMA_INIT"] = "true"
os.environ["JWT_SECRET_KEY"] = "test-secret-key"
os.environ["GEMINI_API_KEY"] = "test-gemini-key"
os.environ.pop("JWT_AUDIENCE", None)

from helpers import (  # noqa: E402
    InMemoryProfileStore,
    StubProvider,
    make_recipe_payload,
    make_token,
    wrap_in_prose,
)


@pytest.fixture
def now() -> datetime:
    return datetime.now(pytz.UTC)


@pytest.fixture
def user_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def profile_store(user_id: uuid.UUID, now: datetime) -> InMemoryProfileStore:
    store = InMemoryProfileStore()
    store.add(user_id, credits=5, last_credit_reset=now - timedelta(hours=1))
    return store


@pytest.fixture
def three_recipes_text() -> str:
    return wrap_in_prose({"recipes": [make_recipe_payload() for _ in range(3)]})


@pytest.fixture
def stub_provider(three_recipes_text: str) -> StubProvider:
    return StubProvider(three_recipes_text)


@pytest.fixture
def auth_headers(user_id: uuid.UUID) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(str(user_id))}"}


@pytest.fixture
def app(profile_store: InMemoryProfileStore, stub_provider: StubProvider):
    """Recipes app with the profile store and provider replaced"""
    from main import app as recipes_app
    from routes import get_generation_provider, get_profile_store

    recipes_app.dependency_overrides[get_profile_store] = lambda: profile_store
    recipes_app.dependency_overrides[get_generation_provider] = lambda: stub_provider
    yield recipes_app
    recipes_app.dependency_overrides.clear()


@pytest.fixture
async def http_client(app) -> AsyncGenerator[httpx.AsyncClient, None]:
    """HTTP client driving the app in-process."""
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client
