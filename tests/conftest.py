import pytest
from fastapi.testclient import TestClient
from typing import Generator

from curated_discoveries.main import app
from curated_discoveries.core.dependencies import get_auth_session_provider
from curated_discoveries.database.supabase_client import get_supabase
from curated_discoveries.modules.auth.service import SessionProvider, clear_auth_cache
from tests.fakes import FakeSupabase


@pytest.fixture(autouse=True)
def reset_auth_cache():
    """Token lookups are cached per process; start every test cold."""
    clear_auth_cache()
    yield
    clear_auth_cache()


@pytest.fixture
def fake_supabase() -> FakeSupabase:
    """In-memory Supabase client shared by services, auth and storage."""
    return FakeSupabase()


@pytest.fixture
def session_provider(fake_supabase) -> SessionProvider:
    """Provider whose service role client is the same fake, so compensating deletes are visible."""
    provider = SessionProvider(fake_supabase, admin_client=fake_supabase)
    yield provider
    provider.close()


@pytest.fixture
def make_user(fake_supabase):
    """Create an identity with a profile row and return (user, access_token)."""
    def _make_user(username: str, email: str = None, password: str = "secret123", **profile):
        user = fake_supabase.auth.create_user(email or f"{username}@example.com", password)
        fake_supabase.add_profile(user, username, **profile)
        session = fake_supabase.auth.issue_session(user)
        return user, session.access_token

    return _make_user


@pytest.fixture
def auth_headers():
    def _headers(token: str) -> dict:
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def test_client(fake_supabase) -> Generator[TestClient, None, None]:
    """Create a test client for the FastAPI app, wired to the in-memory backend."""
    app.dependency_overrides[get_supabase] = lambda: fake_supabase
    app.dependency_overrides[get_auth_session_provider] = lambda: SessionProvider(
        fake_supabase, admin_client=fake_supabase
    )
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()
