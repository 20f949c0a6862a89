"""
Pytest fixtures for TaskDesk tests.
"""

import os

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

# Ensure test config is set before importing taskdesk modules.
os.environ.setdefault("TASKDESK_ENV", "development")
os.environ.setdefault("TASKDESK_DATABASE_URL", "sqlite+aiosqlite:///./taskdesk_test.db")
os.environ.setdefault("TASKDESK_COOKIE_SECURE", "false")

from taskdesk.auth.context import Caller
from taskdesk.auth.passwords import hash_password
from taskdesk.auth.token import create_access_token
from taskdesk.db import base as db_base
from taskdesk.db.base import Base, build_engine
from taskdesk.db.repositories import UserRepository
from taskdesk.images.normalizer import ImageNormalizer
from taskdesk.images.store import ImageStoreError
from taskdesk.models import User, UserRole
import taskdesk.db.tables  # noqa: F401

pytest_plugins = ("pytest_asyncio",)

TEST_PASSWORD = "secret123"


class FakeImageStore:
    """Records uploads and hands back predictable URLs."""

    def __init__(self, fail_with: Exception = None):
        self.calls = []
        self.fail_with = fail_with

    async def upload(self, payload: str, namespace: str) -> str:
        self.calls.append((payload, namespace))
        if self.fail_with is not None:
            raise self.fail_with
        return f"https://img.test/{namespace}/{len(self.calls)}.png"


@pytest.fixture
async def engine(tmp_path):
    """A file-backed SQLite engine per test, wired into taskdesk.db.base."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'taskdesk.db'}")

    original_engine = db_base.engine
    original_factory = db_base.async_session_factory

    # Override global engine/session factory for dependency injection.
    db_base.engine = engine
    db_base.async_session_factory = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    db_base.engine = original_engine
    db_base.async_session_factory = original_factory
    await engine.dispose()


@pytest.fixture
async def session(engine):
    """Provide a database session per test."""
    async with db_base.async_session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def image_store():
    return FakeImageStore()


@pytest.fixture
def normalizer(image_store):
    return ImageNormalizer(image_store, namespace="tasks", timeout_seconds=1.0)


@pytest.fixture
def failing_image_store():
    return FakeImageStore(fail_with=ImageStoreError("quota exceeded", status_code=420))


async def make_user(
    session: AsyncSession,
    username: str,
    role: UserRole = UserRole.USER,
    email: str = None,
) -> User:
    """Insert a user directly, bypassing signup validation."""
    return await UserRepository(session).create(
        username=username,
        email=email or f"{username}@example.com",
        password_hash=hash_password(TEST_PASSWORD),
        role=role,
    )


def caller_for(user: User) -> Caller:
    return Caller(id=user.id, role=user.role, username=user.username, email=user.email)


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id, user.role)}"}


@pytest.fixture
async def dispatcher(engine):
    """A fresh audit dispatcher bound to the test loop."""
    from taskdesk.audit import AuditDispatcher

    dispatcher = AuditDispatcher()
    yield dispatcher
    await dispatcher.stop()


@pytest.fixture
async def client(engine, image_store, dispatcher):
    """Async test client with overridden dependencies."""
    from taskdesk.audit import get_audit_dispatcher
    from taskdesk.images import get_image_store
    from taskdesk.main import app

    app.dependency_overrides[get_image_store] = lambda: image_store
    app.dependency_overrides[get_audit_dispatcher] = lambda: dispatcher

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
async def users(engine):
    """One regular user, a second regular user and an admin, committed."""
    async with db_base.get_session() as session:
        alice = await make_user(session, "alice")
        bob = await make_user(session, "bob")
        admin = await make_user(session, "root", role=UserRole.ADMIN)
    return {"alice": alice, "bob": bob, "admin": admin}
