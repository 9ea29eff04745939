"""
Pytest configuration and fixtures for Course tests.

Stores run against an in-memory SQLite database (aiosqlite) and fakeredis,
so no external services are needed.
"""
import os
from typing import AsyncGenerator, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

# Set test environment before importing app modules
os.environ["ENVIRONMENT"] = "development"
os.environ["DSN"] = "sqlite+aiosqlite:///:memory:"
os.environ["SECRET"] = "test-pepper-for-unit-tests-only"
os.environ["ADMIN_SECRET"] = "test-admin-key-for-unit-tests-only"
os.environ["IS_TEST"] = "true"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["SUPER_ADMIN_LOGIN"] = ""
os.environ["SUPER_ADMIN_PASSWORD"] = ""
os.environ["LOG_FILE_NAME"] = ""

import fakeredis.aioredis  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.core.config import settings  # noqa: E402
from app.core.database import Base, get_db  # noqa: E402
from app.core.security import PasswordHasher  # noqa: E402
import app.models  # noqa: E402,F401
from app.services.admin_auth_service import AdminAuthService  # noqa: E402
from app.services.admin_store import AdminStore  # noqa: E402
from app.services.auth_service import AuthService  # noqa: E402
from app.services.confirmation_broker import ConfirmationBroker  # noqa: E402
from app.services.credential_store import CredentialStore  # noqa: E402
from app.services.email_service import EmailService  # noqa: E402
from app.services.session_store import SessionStore  # noqa: E402
from app.services.token_service import TokenService  # noqa: E402

TEST_EMAIL = "konstchere@gmail.com"
TEST_PASSWORD = "Xer@0101"
TEST_CODE = "1111"


def cookie_value(response, name: str) -> Optional[str]:
    """Value of a cookie set by response (None if not set)."""
    for header in response.headers.get_list("set-cookie"):
        key, _, rest = header.partition("=")
        if key.strip() == name:
            return rest.split(";", 1)[0].strip('"')
    return None


def auth_headers(token: str, name: str = "auth") -> dict:
    return {"Cookie": f"{name}={token}"}


@pytest.fixture
async def db_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine) -> async_sessionmaker:
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
async def redis_client():
    client = fakeredis.aioredis.FakeRedis(decode_responses=True)
    yield client
    await client.flushall()
    await client.aclose()


@pytest.fixture
def mock_db() -> AsyncMock:
    """Create mock async database session."""
    db = AsyncMock()
    db.add = MagicMock()
    db.flush = AsyncMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.execute = AsyncMock()
    return db


@pytest.fixture
def hasher() -> PasswordHasher:
    return PasswordHasher(settings.SECRET, rounds=4)


@pytest.fixture
def credential_store(db, hasher) -> CredentialStore:
    return CredentialStore(db, hasher)


@pytest.fixture
def session_store(db) -> SessionStore:
    return SessionStore(db)


@pytest.fixture
def token_service(session_store) -> TokenService:
    return TokenService.from_settings(session_store, settings)


@pytest.fixture
def broker(redis_client) -> ConfirmationBroker:
    return ConfirmationBroker(redis_client, is_test=True)


@pytest.fixture
def email_service(redis_client) -> EmailService:
    return EmailService(redis_client, settings.REDIS_EMAIL_CHANNEL_NAME)


@pytest.fixture
def auth_service(db, credential_store, session_store, broker, token_service, email_service) -> AuthService:
    return AuthService(db, credential_store, session_store, broker, token_service, email_service)


@pytest.fixture
def admin_store(db, hasher) -> AdminStore:
    return AdminStore(db, hasher)


@pytest.fixture
def admin_service(db, admin_store, session_store, token_service, credential_store) -> AdminAuthService:
    return AdminAuthService(db, admin_store, session_store, token_service, credential_store)


@pytest.fixture
async def client(session_factory, redis_client) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against the app with test stores wired in."""
    from app.main import app

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.state.redis = redis_client
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
