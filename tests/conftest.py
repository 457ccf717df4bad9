"""Shared fixtures: a throwaway SQLite database, seeded people, and an API client."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./cadence_test.db")
os.environ.setdefault("ENVIRONMENT", "test")

from collections.abc import AsyncGenerator
from datetime import datetime, timedelta, timezone
from uuid import uuid4

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from cadence_os.core.database import get_session, get_session_factory
from cadence_os.core.dependencies import get_optional_profile
from cadence_os.main import app
from cadence_os.models import AccessLevel, Base, Organization, Profile


# =============================================================================
# DATABASE
# =============================================================================


@pytest.fixture
async def engine(tmp_path):
    """File-backed so concurrent reads can open their own connections."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'cadence.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


# =============================================================================
# PEOPLE
# =============================================================================


def make_profile(organization_id, full_name: str, access_level: AccessLevel) -> Profile:
    slug = full_name.split()[0].lower()
    return Profile(
        id=uuid4(),
        organization_id=organization_id,
        auth_provider_id=f"uid_{slug}_{uuid4().hex[:8]}",
        email=f"{slug}@acme.test",
        full_name=full_name,
        access_level=access_level,
    )


@pytest.fixture
async def org(session: AsyncSession) -> Organization:
    organization = Organization(id=uuid4(), name="Acme", slug=f"acme-{uuid4().hex[:6]}")
    session.add(organization)
    await session.commit()
    return organization


@pytest.fixture
async def admin(session: AsyncSession, org: Organization) -> Profile:
    profile = make_profile(org.id, "Alice Admin", AccessLevel.ADMIN)
    session.add(profile)
    await session.commit()
    return profile


@pytest.fixture
async def elt(session: AsyncSession, org: Organization) -> Profile:
    profile = make_profile(org.id, "Evan Exec", AccessLevel.ELT)
    session.add(profile)
    await session.commit()
    return profile


@pytest.fixture
async def member(session: AsyncSession, org: Organization) -> Profile:
    profile = make_profile(org.id, "Sam Senior", AccessLevel.SLT)
    session.add(profile)
    await session.commit()
    return profile


@pytest.fixture
def profile_factory():
    """Build an unsaved profile: `profile_factory(org_id, "Full Name", AccessLevel.SLT)`."""
    return make_profile


@pytest.fixture
def next_week() -> datetime:
    return datetime.now(timezone.utc) + timedelta(days=7)


# =============================================================================
# HTTP
# =============================================================================


class AuthState:
    """Which profile the API client is signed in as."""

    def __init__(self):
        self.profile: Profile | None = None


@pytest.fixture
async def client(session_factory, admin) -> AsyncGenerator[httpx.AsyncClient, None]:
    """API client signed in as `admin`; set `client.auth_state.profile` to switch."""
    auth = AuthState()
    auth.profile = admin

    async def override_session():
        async with session_factory() as s:
            try:
                yield s
                await s.commit()
            except Exception:
                await s.rollback()
                raise

    async def override_profile():
        return auth.profile

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_optional_profile] = override_profile

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test/api/v1") as c:
        c.auth_state = auth
        yield c

    app.dependency_overrides.clear()
