"""
Shared fixtures.

Every test gets its own in-memory SQLite database and, for HTTP tests, its
own application instance with a dedicated signing secret.
"""
from datetime import datetime, timezone

import pytest
from httpx import ASGITransport, AsyncClient

from app.core.config import Settings
from app.core.database import build_engine, build_session_factory, create_db_and_tables
from app.crud.user import create_user
from app.main import create_app
from app.schemas.user import RegisterRequest

TEST_SECRET = "test-secret-key-for-moneytrack-api-0123456789"
MEMORY_DB_URL = "sqlite+aiosqlite:///:memory:"
PASSWORD = "Secret123"


def today_utc():
    return datetime.now(timezone.utc).date()


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        SECRET_KEY=TEST_SECRET,
        DATABASE_URL=MEMORY_DB_URL,
        BCRYPT_ROUNDS=10,
        ENVIRONMENT="testing",
    )


@pytest.fixture
async def engine():
    engine = build_engine(MEMORY_DB_URL)
    await create_db_and_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db(engine):
    session_factory = build_session_factory(engine)
    async with session_factory() as session:
        yield session


@pytest.fixture
def make_user(db):
    """Insert a user directly; the password hash is irrelevant for query tests."""
    async def _make_user(email: str = "alice@example.com"):
        user_in = RegisterRequest(name="Doe", firstname="Alice", email=email, password=PASSWORD)
        return await create_user(user_in, "not-a-real-hash", db)
    return _make_user


@pytest.fixture
async def app(settings):
    app = create_app(settings)
    await create_db_and_tables(app.state.engine)
    yield app
    await app.state.engine.dispose()


@pytest.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


@pytest.fixture
def register(client):
    """Register a user over HTTP and return (auth headers, response body)."""
    async def _register(email: str = "alice@example.com", password: str = PASSWORD):
        response = await client.post("/api/v1/auth/register", json={
            "name": "Doe",
            "firstname": "Alice",
            "email": email,
            "password": password,
        })
        assert response.status_code == 201, response.text
        body = response.json()
        return {"Authorization": f"Bearer {body['token']}"}, body
    return _register
