"""
Shared fixtures: in-memory store, recording publisher and a settable clock
"""

import asyncio
from datetime import datetime, timedelta

import pytest
import pytest_asyncio
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from app.core.config import Settings
from app.core.db import Base, create_session_factory
from app.services.repositories import PartyRepo
from app.services.waitlist_service import WaitlistService

# Use in-memory SQLite for tests
TEST_DATABASE_URL = "sqlite:///:memory:"


class RecordingPublisher:
    """Collects published events in order"""

    def __init__(self):
        self.events = []

    async def publish(self, event, payload):
        self.events.append((event, payload))

    def names(self):
        return [event for event, _ in self.events]

    def of(self, event):
        return [payload for name, payload in self.events if name == event]

    def clear(self):
        self.events.clear()


class FakeClock:
    """Callable clock that only moves when told to"""

    def __init__(self, start=None):
        self.current = start or datetime(2025, 5, 22, 11, 0, 0)

    def __call__(self):
        return self.current

    def advance(self, seconds):
        self.current += timedelta(seconds=seconds)


def make_settings(**overrides):
    values = {
        "RESTAURANT_CAPACITY": 10,
        "SERVICE_TIME_PER_PERSON_SECONDS": 3,
        "CHECKIN_TIMEOUT_SECONDS": 300,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def db_engine():
    """Create a test database engine"""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def session_factory(db_engine):
    return create_session_factory(db_engine)


@pytest.fixture
def repo(session_factory):
    return PartyRepo(session_factory)


@pytest.fixture
def publisher():
    return RecordingPublisher()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings():
    return make_settings()


@pytest_asyncio.fixture
async def service(repo, publisher, settings, clock):
    """Waitlist engine wired to the in-memory store"""
    waitlist = WaitlistService(repo, publisher, app_settings=settings, now=clock)
    yield waitlist
    waitlist.shutdown()
    # let cancelled timer tasks unwind before the loop closes
    await asyncio.sleep(0)


@pytest.fixture
def settings_factory():
    """Build settings with individual values overridden"""
    return make_settings
