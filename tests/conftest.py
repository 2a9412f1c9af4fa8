"""Shared test fixtures — async DB, store, cache, client, auth helpers, factories.

Uses SQLite + aiosqlite for fast isolated tests without PostgreSQL.
"""

from __future__ import annotations

import os

# Set test JWT_SECRET before any other import touches pydantic-settings
os.environ.setdefault("JWT_SECRET", "test-secret-for-ci-do-not-use-in-production")

import uuid
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import AsyncGenerator, Optional
from unittest.mock import AsyncMock, patch

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from hrdash.cache.query_cache import QueryCache
from hrdash.common.constants import LeaveStatus, UserRole
from hrdash.config import settings
from hrdash.database import Base, get_db
from hrdash.main import create_app
from hrdash.session.context import SessionContext
from hrdash.session.schemas import SessionIdentity
from hrdash.store.service import RemoteStore

# Import ALL model modules so SQLAlchemy can resolve cross-module relationships
import hrdash.auth.models  # noqa: F401
import hrdash.leave.models  # noqa: F401
import hrdash.profiles.models  # noqa: F401

# ── SQLite compat: compile PG-specific types ────────────────────────

from sqlalchemy.dialects.postgresql import INET, UUID as PG_UUID
from sqlalchemy.ext.compiler import compiles


@compiles(INET, "sqlite")
def _inet_sqlite(element, compiler, **kw):
    return "TEXT"


@compiles(PG_UUID, "sqlite")
def _uuid_sqlite(element, compiler, **kw):
    return "CHAR(36)"


# ── Test database (SQLite in-memory) ────────────────────────────────

TEST_DATABASE_URL = "sqlite+aiosqlite://"

engine = create_async_engine(
    TEST_DATABASE_URL,
    echo=False,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


@event.listens_for(engine.sync_engine, "connect")
def _register_sqlite_functions(dbapi_conn, connection_record):
    """Register NOW() and enforce foreign keys like Postgres does."""
    dbapi_conn.create_function(
        "NOW", 0, lambda: datetime.now(timezone.utc).isoformat(),
    )
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


TestSessionFactory = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False,
)


@pytest.fixture(autouse=True)
async def _setup_db():
    """Create all tables before each test, drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture(autouse=True)
def _reset_rate_limiter():
    """Reset rate limiter storage between tests to prevent cross-test interference."""
    from hrdash.common.rate_limit import limiter

    limiter.reset()
    yield


async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
    async with TestSessionFactory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# ── Data layer ──────────────────────────────────────────────────────

@pytest.fixture
def store() -> RemoteStore:
    return RemoteStore(TestSessionFactory)


@pytest.fixture
def cache() -> QueryCache:
    return QueryCache(stale_time=60)


# ── FastAPI test client ─────────────────────────────────────────────

@pytest.fixture
async def app():
    """Create a fresh app instance wired to the test database."""
    application = create_app(session_factory=TestSessionFactory)
    application.dependency_overrides[get_db] = _override_get_db
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client wired to the test app."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


# ── Database session (for direct DB operations in tests) ────────────

@pytest.fixture
async def db() -> AsyncGenerator[AsyncSession, None]:
    async with TestSessionFactory() as session:
        yield session
        await session.commit()


# ── Model factories ─────────────────────────────────────────────────

def _make_user(
    *,
    email: Optional[str] = None,
    full_name: str = "Test User",
) -> dict:
    return dict(
        id=uuid.uuid4(),
        email=email or f"user-{uuid.uuid4().hex[:8]}@example.com",
        full_name=full_name,
        is_active=True,
        created_at=datetime.now(timezone.utc),
    )


def _make_profile(user: dict, **overrides) -> dict:
    data = dict(
        id=uuid.uuid4(),
        user_id=user["id"],
        full_name=user["full_name"],
        email=user["email"],
        phone="+91 98765 43210",
        department="Engineering",
        position="Engineer",
        status="active",
        salary=Decimal("50000.00"),
        join_date=date(2024, 1, 15),
        remaining_annual_leave=Decimal("12.0"),
        remaining_sick_leave=Decimal("6.0"),
        created_at=datetime.now(timezone.utc),
        updated_at=datetime.now(timezone.utc),
    )
    data.update(overrides)
    return data


async def seed_user(
    db: AsyncSession,
    *,
    role: Optional[UserRole] = None,
    full_name: str = "Test User",
    email: Optional[str] = None,
    with_profile: bool = True,
    **profile_overrides,
) -> dict:
    """Insert a user (+ role row, + profile) and commit; return the user dict
    with ``profile`` set to the profile dict or ``None``."""
    from hrdash.auth.models import User, UserRoleAssignment
    from hrdash.profiles.models import Profile

    user = _make_user(email=email, full_name=full_name)
    db.add(User(**user))
    if role is not None:
        db.add(UserRoleAssignment(user_id=user["id"], role=role))
    profile = None
    if with_profile:
        profile = _make_profile(user, **profile_overrides)
        db.add(Profile(**profile))
    await db.commit()
    user["profile"] = profile
    user["role"] = role or UserRole.employee
    return user


async def seed_leave(
    db: AsyncSession,
    profile_id: uuid.UUID,
    *,
    leave_type: str = "vacation",
    days: Decimal = Decimal("2"),
    status: LeaveStatus = LeaveStatus.pending,
    created_at: Optional[datetime] = None,
) -> dict:
    from hrdash.leave.models import LeaveRequest

    data = dict(
        id=uuid.uuid4(),
        profile_id=profile_id,
        leave_type=leave_type,
        days=days,
        status=status,
        created_at=created_at or datetime.now(timezone.utc),
    )
    db.add(LeaveRequest(**data))
    await db.commit()
    return data


def make_ctx(user: dict, role: Optional[UserRole] = None) -> SessionContext:
    """SessionContext for repository-level tests (no persisted session)."""
    return SessionContext(
        session_id=uuid.uuid4(),
        identity=SessionIdentity(
            user_id=user["id"], email=user["email"], full_name=user["full_name"],
        ),
        role=role or user.get("role") or UserRole.employee,
    )


@pytest.fixture
async def hr_user(db) -> dict:
    return await seed_user(db, role=UserRole.hr, full_name="Alice HR", email="alice@example.com")


@pytest.fixture
async def employee_user(db) -> dict:
    return await seed_user(db, full_name="Bob Employee", email="bob@example.com")


# ── Auth helpers ────────────────────────────────────────────────────

async def login_headers(db: AsyncSession, user: dict) -> dict[str, str]:
    """Persist a session for *user* and return Bearer auth headers."""
    from hrdash.auth.models import User
    from hrdash.auth.service import create_session

    orm_user = await db.get(User, user["id"])
    token, _ = await create_session(db, orm_user, "127.0.0.1", "pytest")
    await db.commit()
    return {"Authorization": f"Bearer {token}"}


def expired_token(user_id: uuid.UUID) -> str:
    from jose import jwt

    payload = {
        "sub": str(user_id),
        "sid": str(uuid.uuid4()),
        "type": "access",
        "exp": datetime.now(timezone.utc) - timedelta(hours=1),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


@pytest.fixture
async def hr_headers(db, hr_user) -> dict[str, str]:
    return await login_headers(db, hr_user)


@pytest.fixture
async def employee_headers(db, employee_user) -> dict[str, str]:
    return await login_headers(db, employee_user)


@pytest.fixture
def mock_google_oauth():
    """Patch verify_google_token to return a fake Google user."""

    def _mock(email: str = "new.user@example.com", name: str = "New User"):
        google_info = {
            "email": email,
            "name": name,
            "picture": "https://lh3.googleusercontent.com/fake",
            "google_id": f"google-{uuid.uuid4().hex[:12]}",
        }
        return patch(
            "hrdash.auth.router.verify_google_token",
            new_callable=AsyncMock,
            return_value=google_info,
        )

    return _mock
