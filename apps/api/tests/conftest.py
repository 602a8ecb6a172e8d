"""
Pytest fixtures for testing.

Provides:
- Async database session on a shared in-memory SQLite connection
- Audit service bound to the test engine
- Test client with database and audit overrides
- Factory fixtures for roles, statuses and users
- Auth header helpers
"""

from typing import AsyncGenerator
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import select
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from conservatory.main import app
from conservatory.models.base import Base
from conservatory.models.role import Permission, Role
from conservatory.models.user import Status, User
from conservatory.api.dependencies.database import get_db
from conservatory.api.dependencies.services import get_audit_service
from conservatory.services.audit import AuditFailureSink, AuditService
from conservatory.services.auth import AuthService
from conservatory.services.roles import RoleService
from conservatory.services.system import SystemService
from conservatory.utils.timezone import utc_now


# Test database URL (SQLite in-memory for speed)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """Create test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def session_factory(db_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest_asyncio.fixture(scope="function")
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """
    Create database session.

    The engine shares one connection, so audit writes made on their own
    sessions see everything this session has committed.
    """
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture(scope="function")
async def audit(session_factory) -> AsyncGenerator[AuditService, None]:
    """Audit service writing to the test database."""
    service = AuditService(session_factory, AuditFailureSink(maxlen=10))
    yield service
    await service.drain()


@pytest_asyncio.fixture(scope="function")
async def client(db: AsyncSession, audit: AuditService) -> AsyncGenerator[AsyncClient, None]:
    """
    Test client with database session and audit service overrides.
    """

    async def override_get_db():
        yield db
        await db.commit()
        # Audit writes share the connection; finish them inside the request
        await audit.drain()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_audit_service] = lambda: audit

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def role_service(db: AsyncSession, audit: AuditService) -> RoleService:
    return RoleService(db, audit)


@pytest_asyncio.fixture
async def system_service(db: AsyncSession, audit: AuditService) -> SystemService:
    return SystemService(db, audit)


# ============ Factory Fixtures ============


@pytest_asyncio.fixture
async def roles(db: AsyncSession, audit: AuditService) -> dict[str, Role]:
    """Persisted permission catalog and the built-in roles, by name."""
    await SystemService(db, audit).sync_permissions()
    await RoleService(db, audit).ensure_default_roles()
    await db.commit()

    result = await db.execute(select(Role))
    return {role.name: role for role in result.scalars().all()}


class RoleFactory:
    """Factory for creating roles with an exact permission set."""

    def __init__(self, db: AsyncSession, audit: AuditService):
        self.db = db
        self.audit = audit

    async def create(self, name: str | None = None, permissions: tuple[str, ...] = ()) -> Role:
        result = await self.db.execute(
            select(Permission).where(Permission.name.in_(list(permissions)))
        )

        role = Role(
            name=name or f"ROLE_{uuid4().hex[:6].upper()}",
            permissions=list(result.scalars().all()),
        )
        self.db.add(role)
        await self.db.commit()
        return role


@pytest_asyncio.fixture
async def role_factory(db: AsyncSession, audit: AuditService, roles) -> RoleFactory:
    """Fixture that provides RoleFactory (catalog already synced)."""
    return RoleFactory(db, audit)


class StatusFactory:
    """Factory for creating statuses."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, name: str = "ACTIVE") -> Status:
        status = Status(name=name)
        self.db.add(status)
        await self.db.commit()
        return status


@pytest_asyncio.fixture
async def status_factory(db: AsyncSession) -> StatusFactory:
    return StatusFactory(db)


class UserFactory:
    """Factory for creating test users."""

    def __init__(self, db: AsyncSession, roles: dict[str, Role]):
        self.db = db
        self.roles = roles

    async def create(
        self,
        email: str | None = None,
        password: str = "testpassword123",
        name: str = "Test User",
        role: Role | str = "STUDENT",
        status: Status | None = None,
        archived: bool = False,
    ) -> User:
        """Create a user in the database."""
        if isinstance(role, str):
            role = self.roles[role]

        user = User(
            email=email or f"test-{uuid4().hex[:8]}@example.com",
            password_hash=AuthService(self.db).hash_password(password),
            name=name,
            role=role,
            status=status,
        )
        self.db.add(user)
        await self.db.flush()

        if archived:
            user.deleted_at = utc_now()

        await self.db.commit()
        return user


@pytest_asyncio.fixture
async def user_factory(db: AsyncSession, roles) -> UserFactory:
    """Fixture that provides UserFactory."""
    return UserFactory(db, roles)


@pytest_asyncio.fixture
async def admin_user(user_factory: UserFactory) -> User:
    """Create an admin test user."""
    return await user_factory.create(email="admin@example.com", name="Admin", role="ADMIN")


@pytest_asyncio.fixture
async def teacher_user(user_factory: UserFactory) -> User:
    return await user_factory.create(email="teacher@example.com", name="Teacher", role="TEACHER")


@pytest_asyncio.fixture
async def student_user(user_factory: UserFactory) -> User:
    return await user_factory.create(email="student@example.com", name="Student", role="STUDENT")


# ============ Auth Helpers ============


def get_auth_headers(user: User) -> dict[str, str]:
    """Helper to get auth headers for any user."""
    token = AuthService(None).create_access_token(user)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(admin_user: User) -> dict[str, str]:
    """Get auth headers for admin user."""
    return get_auth_headers(admin_user)


@pytest.fixture
def teacher_headers(teacher_user: User) -> dict[str, str]:
    return get_auth_headers(teacher_user)


@pytest.fixture
def student_headers(student_user: User) -> dict[str, str]:
    return get_auth_headers(student_user)


@pytest.fixture
def auth_headers_for():
    """Build auth headers for an arbitrary user."""
    return get_auth_headers
