"""
Pytest configuration and fixtures for the EquipTrack test suite.

Every test gets its own file-backed SQLite database so that separate
sessions use separate connections, as they do against PostgreSQL.
"""

import os

# Set test environment before the application modules read it
os.environ["JWT_SECRET_KEY"] = "test-secret-key-12345678901234567890123456789012"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./equiptrack-unused.db"
os.environ["REMINDER_SWEEP_ENABLED"] = "false"

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from equiptrack.config import settings
from equiptrack.database.core import Base, build_engine, get_db
from equiptrack.dependencies import (
    create_access_token,
    get_notification_service,
    get_post_commit_runner,
    get_reminder_service,
    get_session_factory,
    get_status_engine,
)
from equiptrack.models import User, Customer, Item
from equiptrack.schemas.auth import TokenPayload
from equiptrack.schemas.enums import ItemStatus, UserRole
from equiptrack.services.notification_service import NotificationService
from equiptrack.services.post_commit import PostCommitRunner
from equiptrack.services.reminder_service import ReminderService
from equiptrack.services.status_engine import StatusTransitionEngine


def token_for(user: User) -> TokenPayload:
    """Principal for a seeded user"""
    return TokenPayload(user_id=user.id, username=user.email, role=user.role)


def auth_headers(user: User) -> dict:
    token = create_access_token({"sub": user.email, "user_id": user.id, "role": user.role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def test_settings():
    """Settings with a short retry delay for post-commit work"""
    return settings.model_copy(update={"post_commit_retry_base_delay": 0.01})


@pytest.fixture
async def db_engine(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'equiptrack.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def runner():
    return PostCommitRunner(max_retries=2, base_delay=0.01)


@pytest.fixture
def reminders(test_settings):
    return ReminderService(settings=test_settings)


@pytest.fixture
def notifications(session_factory, reminders, test_settings):
    return NotificationService(session_factory=session_factory, reminders=reminders, settings=test_settings)


@pytest.fixture
def transitions(session_factory, notifications, reminders, runner, test_settings):
    return StatusTransitionEngine(
        session_factory=session_factory,
        notifications=notifications,
        reminders=reminders,
        runner=runner,
        settings=test_settings,
    )


async def _add(db, obj):
    db.add(obj)
    await db.commit()
    return obj


@pytest.fixture
async def admin_user(db):
    return await _add(db, User(name="Admin", email="admin@example.com", role=UserRole.ADMIN.value))


@pytest.fixture
async def regular_user(db):
    return await _add(db, User(name="Rina", email="rina@example.com", role=UserRole.USER.value))


@pytest.fixture
async def other_user(db):
    return await _add(db, User(name="Budi", email="budi@example.com", role=UserRole.USER.value))


@pytest.fixture
async def customer(db):
    return await _add(db, Customer(name="PT Sensor Jaya", address="Jl. Industri 5", contact_phone="021-555"))


@pytest.fixture
async def item(db):
    return await _add(db, Item(
        serial_number="SN-1001",
        name="Gas Detector",
        part_number="GD-200",
        sensor="CO/H2S",
        status=ItemStatus.AVAILABLE.value,
    ))


@pytest.fixture
async def second_item(db):
    return await _add(db, Item(
        serial_number="SN-2002",
        name="Flow Meter",
        part_number="FM-10",
        status=ItemStatus.AVAILABLE.value,
    ))


@pytest.fixture
def admin(admin_user):
    return token_for(admin_user)


@pytest.fixture
def user(regular_user):
    return token_for(regular_user)


@pytest.fixture
def other(other_user):
    return token_for(other_user)


@pytest.fixture
async def client(session_factory, transitions, notifications, reminders, runner):
    """HTTP client against the app, wired to the per-test database"""
    from equiptrack.main import app

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_status_engine] = lambda: transitions
    app.dependency_overrides[get_notification_service] = lambda: notifications
    app.dependency_overrides[get_reminder_service] = lambda: reminders
    app.dependency_overrides[get_post_commit_runner] = lambda: runner
    app.dependency_overrides[get_session_factory] = lambda: session_factory

    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    await runner.drain()
    app.dependency_overrides.clear()


@pytest.fixture
def fetch(session_factory):
    """Run a select in a fresh session and return the scalars"""
    async def _fetch(statement):
        async with session_factory() as session:
            return list((await session.execute(statement)).scalars().all())
    return _fetch
