"""
Pytest configuration and fixtures for Stagify tests
"""

import os
import sys
from collections.abc import AsyncGenerator
from datetime import timedelta

# Point the application at SQLite before any stagify module builds its engine
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("GENERATION_BACKEND", "mock")

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))  # noqa: PTH100, PTH118, PTH119, PTH120

from stagify.auth import create_access_token  # noqa: E402
from stagify.constants.plans import PlanTier  # noqa: E402
from stagify.constants.roles import TenantRole  # noqa: E402
from stagify.database import Base  # noqa: E402
from stagify.models import Organization, Tenant, TenantStatus, User, UserStatus  # noqa: E402

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture(scope="function")
async def test_engine():
    """In-memory SQLite engine; StaticPool keeps the single connection alive for the test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, autoflush=False, expire_on_commit=False)


@pytest.fixture(scope="function")
async def test_db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Provide a database session for tests that need it."""
    async with session_factory() as session:
        yield session


async def make_tenant(
    db: AsyncSession,
    slug: str,
    plan: str = PlanTier.FREE.value,
    status: str = TenantStatus.active.value,
    domain: str | None = None,
) -> Tenant:
    tenant = Tenant(name=slug.title(), slug=slug, plan=plan, status=status, domain=domain, settings={})
    db.add(tenant)
    await db.commit()
    await db.refresh(tenant)
    return tenant


async def make_user(
    db: AsyncSession,
    tenant: Tenant,
    email: str,
    role: str = TenantRole.MEMBER.value,
    status: str = UserStatus.active.value,
    organization: Organization | None = None,
) -> User:
    user = User(
        email=email,
        name=email.split("@")[0],
        role=role,
        status=status,
        tenant_id=tenant.id,
        organization_id=organization.id if organization else None,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


def auth_headers_for(user: User) -> dict:
    """Generate authentication headers for a user"""
    access_token = create_access_token(data={"sub": user.id}, expires_delta=timedelta(minutes=30))
    return {"Authorization": f"Bearer {access_token}"}


@pytest.fixture
async def acme_tenant(test_db: AsyncSession) -> Tenant:
    """Active free-plan tenant"""
    return await make_tenant(test_db, "acme")


@pytest.fixture
async def globex_tenant(test_db: AsyncSession) -> Tenant:
    """A second, unrelated active tenant on the pro plan"""
    return await make_tenant(test_db, "globex", plan=PlanTier.PRO.value)


@pytest.fixture
async def acme_member(test_db: AsyncSession, acme_tenant: Tenant) -> User:
    return await make_user(test_db, acme_tenant, "member@acme.test", role=TenantRole.MEMBER.value)


@pytest.fixture
async def acme_viewer(test_db: AsyncSession, acme_tenant: Tenant) -> User:
    return await make_user(test_db, acme_tenant, "viewer@acme.test", role=TenantRole.VIEWER.value)


@pytest.fixture
async def acme_admin(test_db: AsyncSession, acme_tenant: Tenant) -> User:
    return await make_user(test_db, acme_tenant, "admin@acme.test", role=TenantRole.ADMIN.value)


@pytest.fixture
async def globex_member(test_db: AsyncSession, globex_tenant: Tenant) -> User:
    return await make_user(test_db, globex_tenant, "member@globex.test", role=TenantRole.MEMBER.value)
