import os
from contextlib import contextmanager
from datetime import datetime
from typing import AsyncGenerator

# The engine in libs.db.config is built at import time; point it somewhere
# harmless before anything imports it.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./studio-test.db")
os.environ.setdefault("TIMEZONE", "Europe/Paris")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.common.clock import FixedClock, get_clock
from libs.common.datetime_utils import studio_tz
from libs.db.base import Base
from libs.db.session import get_async_db
from services.booking_service import models as _booking_models  # noqa: F401
from services.booking_service.policy import ChargePolicy
from tests.factories import (
    ClassRefFactory,
    MemberRefFactory,
    OccurrenceFactory,
    ScheduleTemplateFactory,
    SubscriptionFactory,
)

MEMBER_AUTH_ID = "member-auth-id"


# ---------------------------------------------------------------------------
# Auth helpers
# ---------------------------------------------------------------------------


def make_member_user(
    user_id: str = MEMBER_AUTH_ID, email: str = "member@example.com"
) -> AuthUser:
    return AuthUser(user_id=user_id, email=email, role="authenticated")


def make_admin_user(user_id: str = "admin-auth-id") -> AuthUser:
    return AuthUser(user_id=user_id, email="desk@example.com", role="service_role")


@contextmanager
def override_auth(app, user: AuthUser):
    """Temporarily authenticate every request to ``app`` as ``user``."""
    previous = app.dependency_overrides.get(get_current_user)
    app.dependency_overrides[get_current_user] = lambda: user
    try:
        yield user
    finally:
        if previous is None:
            app.dependency_overrides.pop(get_current_user, None)
        else:
            app.dependency_overrides[get_current_user] = previous


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def test_engine(tmp_path):
    """
    A fresh SQLite database file per test, with every table created.
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def ops_db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """
    Second session for the operation under test.

    A failed operation rolls its session back, which expires every object the
    session holds; keeping seed data in ``db_session`` leaves it readable.
    """
    async with session_factory() as session:
        yield session


# ---------------------------------------------------------------------------
# Time and policy
# ---------------------------------------------------------------------------


@pytest.fixture
def clock() -> FixedClock:
    """Monday 6 January 2025, 09:00 on the studio clock."""
    return FixedClock(datetime(2025, 1, 6, 9, 0, tzinfo=studio_tz()))


@pytest.fixture
def policy() -> ChargePolicy:
    return ChargePolicy()


# ---------------------------------------------------------------------------
# Seed data
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def member(db_session):
    member = MemberRefFactory.create(auth_id=MEMBER_AUTH_ID)
    db_session.add(member)
    await db_session.commit()
    return member


@pytest_asyncio.fixture
async def subscription(db_session, member):
    subscription = SubscriptionFactory.create(member_id=member.id)
    db_session.add(subscription)
    await db_session.commit()
    return subscription


@pytest.fixture
def make_occurrence(db_session):
    """Async factory persisting a class, a template and one occurrence."""

    async def _make(**overrides):
        class_ref = ClassRefFactory.create()
        template = ScheduleTemplateFactory.create(class_id=class_ref.id)
        occurrence = OccurrenceFactory.create(
            template_id=template.id,
            class_id=class_ref.id,
            trainer_id=template.trainer_id,
            **overrides,
        )
        db_session.add_all([class_ref, template, occurrence])
        await db_session.commit()
        return occurrence

    return _make


# ---------------------------------------------------------------------------
# HTTP clients
# ---------------------------------------------------------------------------


def _session_override(session_factory):
    async def _get_db():
        async with session_factory() as session:
            yield session

    return _get_db


@pytest_asyncio.fixture
async def schedule_client(session_factory, clock) -> AsyncGenerator[AsyncClient, None]:
    """Schedule service client authenticated as studio staff."""
    from services.schedule_service.app.main import app

    app.dependency_overrides[get_async_db] = _session_override(session_factory)
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_current_user] = lambda: make_admin_user()

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def booking_client(session_factory, clock) -> AsyncGenerator[AsyncClient, None]:
    """Booking service client authenticated as the seeded member."""
    from services.booking_service.app.main import app

    app.dependency_overrides[get_async_db] = _session_override(session_factory)
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_current_user] = lambda: make_member_user()

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()
