"""Test fixtures — a fresh in-memory database per test.

Testing pattern for async SQLAlchemy + FastAPI:

1. Each test gets its own aiosqlite in-memory engine (StaticPool, so every
   session shares the one connection) with all tables created.
2. The app's get_db dependency is overridden to hand out that session.
3. The engine is disposed after the test — all data vanishes.

Settings are read once at import time, so the environment is prepared
before anything from volca is imported.
"""

import os

os.environ.setdefault("VOLCA_DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("VOLCA_JWT_SECRET", "test-secret-0123456789abcdef0123456789abcdef")
os.environ.setdefault("VOLCA_BCRYPT_ROUNDS", "4")
os.environ["VOLCA_ENVIRONMENT"] = "local"

import uuid  # noqa: E402

import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from volca.auth.password import hash_password  # noqa: E402
from volca.db.engine import get_db  # noqa: E402
from volca.db.models import Base, Project, ProjectUser, User  # noqa: E402
from volca.main import app  # noqa: E402
from volca.services.token_service import TokenIssuer  # noqa: E402

DEFAULT_PASSWORD = "correct-horse-battery"


@pytest_asyncio.fixture()
async def db_session():
    """Per-test session on a throwaway in-memory database."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session = AsyncSession(engine, expire_on_commit=False)
    try:
        yield session
    finally:
        await session.close()
        await engine.dispose()


@pytest_asyncio.fixture()
async def client(db_session):
    """HTTP client with the app's get_db overridden.

    Auth is NOT overridden: tests authenticate with real access tokens
    (see auth_headers) so the full pipeline runs.
    """
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture()
async def make_user(db_session):
    """Factory: create a user. password=None creates a password-less user."""

    async def _make_user(email=None, password=DEFAULT_PASSWORD, verified_at=None):
        user = User(
            email=email or f"user-{uuid.uuid4().hex[:8]}@example.com",
            first_name="Test",
            last_name="User",
            password=hash_password(password) if password else None,
            verified_at=verified_at,
        )
        db_session.add(user)
        await db_session.commit()
        return user

    return _make_user


@pytest_asyncio.fixture()
async def make_project(db_session):
    """Factory: create a project owned by admin (admin is also a member)."""

    async def _make_project(admin, active=True, name="Test Project"):
        project = Project(name=name, admin_id=admin.id, has_active_subscription=active)
        db_session.add(project)
        await db_session.flush()
        db_session.add(ProjectUser(user_id=admin.id, project_id=project.id))
        await db_session.commit()
        return project

    return _make_project


@pytest_asyncio.fixture()
async def add_member(db_session):
    """Factory: add a membership edge."""

    async def _add_member(user, project):
        edge = ProjectUser(user_id=user.id, project_id=project.id)
        db_session.add(edge)
        await db_session.commit()
        return edge

    return _add_member


@pytest_asyncio.fixture()
async def auth_headers(db_session):
    """Factory: Authorization header carrying a real access token for user."""

    def _auth_headers(user):
        token = TokenIssuer(db_session).issue_access_token(user).access_token
        return {"Authorization": f"Bearer {token}"}

    return _auth_headers
