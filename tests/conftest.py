"""pytest fixtures shared across all tests."""

from __future__ import annotations

import os

# Must be in place before the settings are first read (cached process-wide)
os.environ.setdefault("JWT_SECRET_KEY", "test-jwt-secret-key-with-at-least-32-bytes")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("APP_DEBUG", "true")

from unittest.mock import AsyncMock  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from festauth.core.auth import hash_password  # noqa: E402
from festauth.core.config import get_settings  # noqa: E402
from festauth.core.email import EmailService  # noqa: E402
from festauth.models.base import Base  # noqa: E402
from festauth.models.user import User  # noqa: E402
from festauth.services.credentials import UserRepository  # noqa: E402

# SQLite in-memory, one fresh database per test function.
TEST_DB_URL = "sqlite+aiosqlite:///:memory:"
PASSWORD = "correct-horse-battery"


class FakeTransport:
    """In-memory stand-in for the auth cookie."""

    def __init__(self, token: str | None = None) -> None:
        self.token = token
        self.max_age: int | None = None
        self.cleared = False

    def read(self) -> str | None:
        return self.token

    def write(self, token: str, max_age: int) -> None:
        self.token = token
        self.max_age = max_age
        self.cleared = False

    def clear(self) -> None:
        self.token = None
        self.max_age = 0
        self.cleared = True


@pytest.fixture
def settings():
    return get_settings()


@pytest_asyncio.fixture
async def engine():
    """Create a fresh in-memory SQLite engine per test function."""
    eng = create_async_engine(
        TEST_DB_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False, autoflush=True)


@pytest_asyncio.fixture
async def db_session(session_factory):
    """Yield an async session bound to the test engine."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def repo(db_session):
    return UserRepository(db_session)


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def mailer():
    mock = AsyncMock(spec=EmailService)
    mock.send_password_reset.return_value = True
    return mock


@pytest.fixture
def make_user(session_factory):
    """Factory: insert and commit a user, return the detached row."""

    async def _make(
        username: str | None = "alice",
        *,
        email: str | None = None,
        name: str | None = None,
        password: str = PASSWORD,
        role: str = "user",
        is_active: bool = True,
        is_shadow_user: bool = False,
    ) -> User:
        async with session_factory() as session:
            user = User(
                name=name or (username or "Someone").title(),
                username=username,
                email=email if email is not None else (f"{username}@example.com" if username else None),
                password_hash=hash_password(password),
                role=role,
                is_active=is_active,
                is_shadow_user=is_shadow_user,
            )
            session.add(user)
            await session.commit()
            await session.refresh(user)
            return user

    return _make


@pytest.fixture
def broadcaster():
    return AsyncMock()


@pytest_asyncio.fixture
async def client(session_factory, mailer, broadcaster):
    """HTTPX async test client wired to the FastAPI app with a test DB."""
    from festauth.api.app import create_app
    from festauth.api.dependencies import get_broadcaster, get_db
    from festauth.core.email import get_email_service

    app = create_app()

    async def override_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[get_email_service] = lambda: mailer
    app.dependency_overrides[get_broadcaster] = lambda: broadcaster

    # Dotted host so the cookie jar keeps and resends the session cookie
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://festauth.test"
    ) as ac:
        yield ac
