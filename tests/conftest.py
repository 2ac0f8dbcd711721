"""Shared fixtures: in-memory SQLite store, profiles, schedules and an API client."""

import os

# Set test configuration BEFORE any app imports
os.environ["DATABASE_DSN"] = "sqlite+aiosqlite://"
os.environ["CHANGE_EVENTS_ENABLED"] = "false"
os.environ["JWT_SECRET_KEY"] = "test-secret-key"
os.environ["DEBUG"] = "false"

import uuid
from collections.abc import AsyncGenerator
from datetime import UTC, date, datetime, time, timedelta

import pytest
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.config import settings
from app.database import Base, get_db
from app.main import app as fastapi_app
from app.models import Profile, Schedule

# Fixed calendar day used by service tests
TODAY = date(2025, 3, 10)


@pytest.fixture
async def engine():
    """Fresh in-memory database per test, with working SAVEPOINTs."""
    test_engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # pysqlite's own transaction handling breaks SAVEPOINT; let SQLAlchemy emit BEGIN
    @event.listens_for(test_engine.sync_engine, "connect")
    def _set_isolation(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(test_engine.sync_engine, "begin")
    def _begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


# ============================================================================
# PROFILES
# ============================================================================


async def create_profile(
    db: AsyncSession,
    role: str,
    full_name: str,
    student_number: str | None = None,
    child_student_number: str | None = None,
) -> Profile:
    profile = Profile(
        id=uuid.uuid4(),
        email=f"{full_name.lower().replace(' ', '.')}@example.edu",
        full_name=full_name,
        role=role,
        student_number=student_number,
        year_level="2nd Year" if role == "student" else None,
        child_student_number=child_student_number,
        is_active=True,
    )
    db.add(profile)
    await db.commit()
    return profile


@pytest.fixture
async def admin(db) -> Profile:
    return await create_profile(db, "admin", "Clinical Coordinator")


@pytest.fixture
async def student_a(db) -> Profile:
    return await create_profile(db, "student", "Ana Reyes", student_number="2023-0001")


@pytest.fixture
async def student_b(db) -> Profile:
    return await create_profile(db, "student", "Bea Santos", student_number="2023-0002")


@pytest.fixture
async def student_c(db) -> Profile:
    return await create_profile(db, "student", "Cora Dizon", student_number="2023-0003")


@pytest.fixture
async def parent(db) -> Profile:
    return await create_profile(db, "parent", "Lita Reyes", child_student_number="2023-0001")


# ============================================================================
# SCHEDULES
# ============================================================================


async def create_schedule(
    db: AsyncSession,
    duty_date: date,
    max_students: int = 2,
    status: str = "pending",
    created_by: Profile | None = None,
) -> Schedule:
    schedule = Schedule(
        id=uuid.uuid4(),
        date=duty_date,
        shift_start=time(7, 0),
        shift_end=time(15, 0),
        location="Delivery Room",
        max_students=max_students,
        active_bookings=0,
        status=status,
        created_by=created_by.id if created_by else None,
    )
    db.add(schedule)
    await db.commit()
    return schedule


@pytest.fixture
async def schedule(db, admin) -> Schedule:
    """Pending schedule a week after TODAY with two slots."""
    return await create_schedule(db, TODAY + timedelta(days=7), created_by=admin)


# ============================================================================
# API
# ============================================================================


def auth_headers(profile: Profile) -> dict[str, str]:
    """Bearer header with a token shaped like the auth service's."""
    token = jwt.encode(
        {
            "sub": str(profile.id),
            "aud": settings.jwt_audience,
            "exp": datetime.now(UTC) + timedelta(hours=1),
        },
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    fastapi_app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(
        transport=ASGITransport(app=fastapi_app), base_url="http://test"
    ) as test_client:
        yield test_client
    fastapi_app.dependency_overrides.clear()
