"""
Shared test fixtures for the site attendance test suite.

Tests that touch the database get a fresh in-memory one (aiosqlite + StaticPool)
that the app's ``get_db`` dependency is pointed at.
"""

import os
from typing import AsyncGenerator

import pytest

# Override environment BEFORE importing application modules
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["CORS_ORIGINS"] = '["*"]'
os.environ["RATE_LIMIT_ENABLED"] = "false"

from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from site_attendance.api.deps import get_db
from site_attendance.core.enums import Role
from site_attendance.core.security import create_access_token, get_password_hash
from site_attendance.db.base import Base
from site_attendance.main import app
from site_attendance.models.site import Site, Worker
from site_attendance.models.user import User

TEST_PASSWORD = "secret123"


@pytest.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker, None]:
    """Create all tables on a private engine and route the app to it."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with factory() as session:
            yield session

    app.dependency_overrides[get_db] = _override_get_db
    yield factory

    app.dependency_overrides.pop(get_db, None)
    await engine.dispose()


@pytest.fixture
async def async_client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Return a httpx AsyncClient wired to the app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Return a raw database session for direct setup and queries in tests."""
    async with session_factory() as session:
        yield session


# ── Helpers ─────────────────────────────────────────────────────────
def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id, user.username)}"}


async def make_user(
    session: AsyncSession,
    username: str,
    role: Role,
    site_id: int | None = None,
    name: str | None = None,
) -> User:
    user = User(
        username=username,
        hashed_password=get_password_hash(TEST_PASSWORD),
        name=name or username.replace("_", " ").title(),
        role=role.value,
        site_id=site_id,
    )
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return user


async def make_site(session: AsyncSession, name: str = "Site One") -> Site:
    site = Site(name=name, location="Pune", incharge_name="", is_active=True)
    session.add(site)
    await session.commit()
    await session.refresh(site)
    return site


# ── Domain fixtures ─────────────────────────────────────────────────
@pytest.fixture
async def site(db_session: AsyncSession) -> Site:
    return await make_site(db_session, "Site One")


@pytest.fixture
async def other_site(db_session: AsyncSession) -> Site:
    return await make_site(db_session, "Site Two")


@pytest.fixture
async def foreman(db_session: AsyncSession, site: Site) -> User:
    return await make_user(db_session, "foreman_one", Role.FOREMAN, site.id)


@pytest.fixture
async def incharge(db_session: AsyncSession, site: Site) -> User:
    user = await make_user(db_session, "incharge_one", Role.SITE_INCHARGE, site.id)
    site.incharge_id = user.id
    site.incharge_name = user.name
    await db_session.commit()
    return user


@pytest.fixture
async def admin(db_session: AsyncSession) -> User:
    return await make_user(db_session, "boss", Role.ADMIN)


@pytest.fixture
async def workers(db_session: AsyncSession, site: Site) -> list[Worker]:
    rows = [
        Worker(name="Rajesh Kumar", father_name="Mahesh Kumar", designation="Mason",
               daily_wage=800, site_id=site.id),
        Worker(name="Suresh Sharma", father_name="Naresh Sharma", designation="Carpenter",
               daily_wage=900, site_id=site.id),
        Worker(name="Ramesh Yadav", father_name="Kailash Yadav", designation="Helper",
               daily_wage=600, site_id=site.id),
    ]
    db_session.add_all(rows)
    await db_session.commit()
    for w in rows:
        await db_session.refresh(w)
    return rows


def entry(worker: Worker, present: bool = True, x: float | None = 1, y: float | None = 0) -> dict:
    """One attendance sheet row in wire (camelCase) form."""
    row = {
        "workerId": worker.id,
        "workerName": worker.name,
        "designation": worker.designation,
        "isPresent": present,
    }
    if present:
        row["formulaX"] = x
        row["formulaY"] = y
    return row
