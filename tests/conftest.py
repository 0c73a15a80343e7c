"""Pytest configuration and fixtures."""

from datetime import datetime, timedelta
from typing import AsyncGenerator, Generator

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import StaticPool

from tableside import main
from tableside.floor import ServiceFloor
from tableside.schemas import ServingGroup, ServingItem
from tableside.services.feed import MemoryChangeFeed
from tableside.services.notifications import MockNotificationSink, NotificationBridge
from tableside.services.remote import MemoryRemoteStore
from tableside.services.store import ServingGroupStore

# Use in-memory SQLite for tests
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


class FakeClock:
    """Settable wall clock for the floor."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, minutes: int) -> None:
        self.now += timedelta(minutes=minutes)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 5, 1, 18, 0))


@pytest.fixture
def store(clock: FakeClock) -> ServingGroupStore:
    return ServingGroupStore(clock)


@pytest.fixture
def feed() -> MemoryChangeFeed:
    return MemoryChangeFeed()


@pytest.fixture
def remote(feed: MemoryChangeFeed) -> MemoryRemoteStore:
    return MemoryRemoteStore(feed=feed)


@pytest.fixture
def sink() -> MockNotificationSink:
    return MockNotificationSink()


@pytest.fixture
def bridge(sink: MockNotificationSink) -> NotificationBridge:
    return NotificationBridge(sink)


@pytest.fixture
def hotpot_group() -> ServingGroup:
    """Three tables of four with one under-portioned hot pot."""
    return ServingGroup(
        id="grp1",
        name="Đoàn Sông Hàn pax Việt",
        location="Tầng 2",
        guest_count=12,
        table_count=3,
        table_split="3x4",
        items=[
            ServingItem(id="lau", name="Lẩu riêu cua", total_quantity=3, unit="Nồi"),
            ServingItem(id="nem", name="Nem rán", total_quantity=3, unit="Đĩa"),
        ],
    )


@pytest_asyncio.fixture
async def sql_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create a test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    yield engine
    await engine.dispose()


@pytest.fixture
def floor(clock: FakeClock) -> ServiceFloor:
    """Floor on in-memory adapters; the store does not publish, so no reloads race the tests."""
    return ServiceFloor(
        feed=MemoryChangeFeed(),
        remote=MemoryRemoteStore(),
        sink=MockNotificationSink(),
        clock=clock,
    )


@pytest.fixture
def client(floor: ServiceFloor, monkeypatch: pytest.MonkeyPatch) -> Generator[TestClient, None, None]:
    """Create a test client running the lifespan against the test floor."""
    monkeypatch.setattr(main, "get_service_floor", lambda: floor)
    # Don't raise server exceptions so we can test error status codes
    with TestClient(main.app, raise_server_exceptions=False) as test_client:
        yield test_client
