"""
Shared pytest fixtures.

Every test gets its own in-memory SQLite database. API tests go through the
real FastAPI app with the database session and the authenticated user
replaced by fixtures.
"""
import os

os.environ.setdefault("JWT_SECRET", "test-secret-for-orgroles")

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from orgroles.core.database.base import Base
from orgroles.core.database.engine import enable_sqlite_savepoints, get_db
from orgroles.features.organizations.models import Organization
from orgroles.features.organizations.service import add_member
from orgroles.features.roles.models import OrganizationRole  # noqa: F401
from orgroles.features.roles.service import create_role, grant_role
from orgroles.features.users.dependencies import get_current_user, get_token_claims
from orgroles.features.users.models import User
from orgroles.main import app
from tests.utils import make_organization, make_user


# ============================================================================
# Database
# ============================================================================

@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    enable_sqlite_savepoints(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db(engine) -> AsyncGenerator[AsyncSession, None]:
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)
    async with session_factory() as session:
        yield session


# ============================================================================
# Users and organizations
# ============================================================================

@pytest_asyncio.fixture
async def admin(db) -> User:
    """Global administrator holding the manage-organizations capability."""
    return await make_user(db, "root", is_admin=True)


@pytest_asyncio.fixture
async def acme(db, admin) -> Organization:
    """Organization carrying only the default roles."""
    return await make_organization(db, "acme", admin)


@pytest_asyncio.fixture
async def globex(db, admin) -> Organization:
    return await make_organization(db, "globex", admin)


@pytest_asyncio.fixture
async def alice(db, acme) -> User:
    """Plain member of acme without roles."""
    user = await make_user(db, "alice")
    await add_member(db, acme, user)
    await db.commit()
    return user


@pytest_asyncio.fixture
async def delegate(db, admin, acme, globex) -> User:
    """Member of both organizations holding manage-roles in acme only."""
    user = await make_user(db, "dana")
    await add_member(db, acme, user)
    await add_member(db, globex, user)
    await create_role(db, acme, "manage-roles", "Delegated role management", admin)
    await grant_role(db, acme, user, "manage-roles", admin)
    await db.commit()
    return user


@pytest_asyncio.fixture
async def outsider(db) -> User:
    """User with no memberships."""
    user = await make_user(db, "mallory")
    await db.commit()
    return user


# ============================================================================
# API client
# ============================================================================

@pytest.fixture
def auth_state(admin) -> dict:
    return {"user": admin, "claims": {}}


@pytest.fixture
def act_as(auth_state):
    """Switch the user the API client is authenticated as."""
    def _act_as(user: User, claims: dict | None = None):
        auth_state["user"] = user
        auth_state["claims"] = claims or {}
    return _act_as


@pytest_asyncio.fixture
async def client(db, auth_state) -> AsyncGenerator[AsyncClient, None]:
    async def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user] = lambda: auth_state["user"]
    app.dependency_overrides[get_token_claims] = lambda: auth_state["claims"]
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            yield ac
    finally:
        app.dependency_overrides.clear()
