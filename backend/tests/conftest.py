"""Shared fixtures for CareCircle backend tests.

Uses SQLite (aiosqlite) by default, no PostgreSQL required.
Set TEST_DATABASE_URL to override (e.g. for CI with real PostgreSQL).
"""

import os
import uuid
from datetime import timedelta

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

TEST_DATABASE_URL = os.environ.get("TEST_DATABASE_URL", "sqlite+aiosqlite://")

# Ensure settings can be loaded without .env; point Redis at a closed port
# so cache and rate limiter fall back to their in-process behaviour.
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-unit-tests")
os.environ.setdefault("REDIS_URL", "redis://localhost:1/0")

from carecircle.database import Base  # noqa: E402

IS_SQLITE = TEST_DATABASE_URL.startswith("sqlite")

requires_pg = pytest.mark.skipif(
    IS_SQLITE, reason="needs PostgreSQL (set TEST_DATABASE_URL)",
)

# ---------------------------------------------------------------------------
# Engine: SQLite in-memory with StaticPool (shared across connections)
# ---------------------------------------------------------------------------

_engine_kwargs = {}
if IS_SQLITE:
    _engine_kwargs = {
        "connect_args": {"check_same_thread": False},
        "poolclass": StaticPool,
    }

_engine = create_async_engine(TEST_DATABASE_URL, echo=False, **_engine_kwargs)
_TestSession = async_sessionmaker(
    bind=_engine, class_=AsyncSession, expire_on_commit=False,
)

if IS_SQLITE:
    # pysqlite defers BEGIN until the first DML statement, which breaks
    # SAVEPOINT. Take over transaction control so begin_nested() works.
    @event.listens_for(_engine.sync_engine, "connect")
    def _sqlite_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(_engine.sync_engine, "begin")
    def _sqlite_begin(conn):
        conn.exec_driver_sql("BEGIN")


# ---------------------------------------------------------------------------
# Session-scoped: create / drop tables
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture(scope="session", autouse=True)
async def _setup_tables():
    import carecircle.models  # noqa: F401 (populate Base.metadata)

    async with _engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with _engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await _engine.dispose()


# ---------------------------------------------------------------------------
# Reset rate-limiter counters before every test
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _reset_rate_limits():
    """Clear in-memory rate-limit counters so tests never block each other."""
    from carecircle.core.rate_limit import limiter

    limiter.reset()


# ---------------------------------------------------------------------------
# Per-test session with rollback
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture()
async def db_session():
    async with _TestSession() as session:
        yield session
        await session.rollback()


@pytest.fixture()
def session_factory():
    """Independent sessions, for tests that race several transactions."""
    return _TestSession


# ---------------------------------------------------------------------------
# HTTP test client
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture()
async def client(db_session: AsyncSession):
    from carecircle.database import get_db
    from carecircle.main import app

    async def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Convenience: users, tokens, a senior with its primary contact
# ---------------------------------------------------------------------------

def auth_headers(user_id: uuid.UUID) -> dict[str, str]:
    """Bearer headers for a token issued to ``user_id``."""
    from carecircle.core.security import create_access_token

    token = create_access_token({"sub": str(user_id)}, expires_delta=timedelta(minutes=5))
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def make_user(db_session: AsyncSession):
    """Factory creating a user with a unique e-mail address."""
    from carecircle.models.user import User

    async def _make(first_name: str = "Test"):
        user = User(
            email=f"user-{uuid.uuid4().hex[:8]}@test.de",
            first_name=first_name,
            last_name="Caregiver",
        )
        db_session.add(user)
        await db_session.flush()
        return user

    return _make


@pytest_asyncio.fixture()
async def circle(db_session: AsyncSession, make_user):
    """A senior whose creator is the primary, full-access contact.

    Keys: senior, owner, owner_membership, headers
    """
    from carecircle.services.membership_service import get_membership
    from carecircle.services.senior_service import create_senior

    owner = await make_user("Owner")
    senior = await create_senior(
        db_session, creator_id=owner.id, first_name="Erna", last_name="Muster",
        relationship="daughter",
    )
    membership = await get_membership(db_session, senior.id, owner.id)
    return {
        "senior": senior,
        "owner": owner,
        "owner_membership": membership,
        "headers": auth_headers(owner.id),
    }


@pytest.fixture()
def make_alert(db_session: AsyncSession):
    """Factory inserting an alert the way the detection process does."""
    from carecircle.enums import AlertSeverity
    from carecircle.models.alert import Alert
    from carecircle.schemas.alert import DetectedIndicators

    async def _make(senior_id, severity=AlertSeverity.MEDIUM, **kwargs):
        alert = Alert(
            senior_id=senior_id,
            alert_type=kwargs.pop("alert_type", "health"),
            severity=severity,
            title=kwargs.pop("title", "Mentioned dizziness"),
            description=kwargs.pop("description", "Reported feeling dizzy twice"),
            detected_indicators=DetectedIndicators(keywords=["dizzy"]),
            confidence_score=0.8,
            **kwargs,
        )
        db_session.add(alert)
        await db_session.flush()
        await db_session.refresh(alert)
        return alert

    return _make
