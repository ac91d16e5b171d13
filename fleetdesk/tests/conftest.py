"""
Centralized Test Configuration.

Domain tests run against the in-memory repository; API tests run the app
against in-memory SQLite with a mock Redis standing in for the lock backend.
"""

import asyncio
from datetime import date

import pytest
from httpx import AsyncClient, ASGITransport
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from fleetdesk.app.main import app
from fleetdesk.app.db.session import get_db, Base
from fleetdesk.app.core.jwt import create_access_token
from fleetdesk.app.core.redis_client import get_redis
import fleetdesk.app.core.redis_client as redis_client_module
from fleetdesk.app.domain.allocation.allocation_ledger import AllocationLedger
from fleetdesk.app.domain.booking.booking_service import BookingService
from fleetdesk.app.domain.booking.conflict_resolver import BookingConflictResolver
from fleetdesk.app.domain.registry.registry_service import TruckRegistry
from fleetdesk.app.models.client import Client
from fleetdesk.app.models.truck_enums import TruckType

from fakes import InMemoryFleetRepository

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

FAR_EXPIRY = date(2031, 1, 1)


class MockLock:
    """Stand-in for redis.asyncio.lock.Lock backed by an asyncio.Lock."""

    def __init__(self, redis, name, timeout=None, blocking_timeout=None):
        self.redis = redis
        self.name = name
        self.blocking_timeout = blocking_timeout

    async def acquire(self):
        if self.redis.fail_locks:
            raise RedisConnectionError("Connection refused")
        lock = self.redis.locks.setdefault(self.name, asyncio.Lock())
        try:
            await asyncio.wait_for(lock.acquire(), timeout=self.blocking_timeout)
        except asyncio.TimeoutError:
            return False
        return True

    async def release(self):
        self.redis.locks[self.name].release()


# Mock Redis for reliability in CI/CD
class MockRedis:
    def __init__(self):
        self.store = {}
        self.locks = {}
        self.fail_locks = False
        self._closed = False

    async def ping(self):
        if self._closed:
            return False
        return True

    def lock(self, name, timeout=None, blocking_timeout=None):
        return MockLock(self, name, timeout=timeout, blocking_timeout=blocking_timeout)

    async def flushdb(self):
        self.store = {}
        self.locks = {}
        self.fail_locks = False

    async def aclose(self):
        self._closed = True
        self.store = {}


@pytest.fixture
def mock_redis():
    return MockRedis()


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine.sync_engine, "connect")
    def set_sqlite_pragma(dbapi_conn, connection_record):
        """Enable foreign key constraints for SQLite."""
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def apply_overrides(session_factory, mock_redis):
    """Point the app at the test database and the mock Redis."""
    original_client = redis_client_module.redis_client
    redis_client_module.redis_client = mock_redis

    async def override_get_db():
        async with session_factory() as session:
            yield session

    async def override_get_redis():
        return mock_redis

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = override_get_redis
    yield

    app.dependency_overrides = {}
    redis_client_module.redis_client = original_client


@pytest.fixture
async def client(apply_overrides):
    """Async HTTP client for API tests."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


# Tokens

def _headers(payload):
    return {"Authorization": f"Bearer {create_access_token(payload)}"}


@pytest.fixture
def admin_headers():
    return _headers({"sub": "admin", "user_id": 1, "role": "ADMIN"})


@pytest.fixture
def client_headers():
    """Headers for a CLIENT token; pass the client id it belongs to."""
    def make(client_id, user_id=100):
        return _headers({"sub": f"client-{client_id}", "user_id": user_id, "role": "CLIENT", "client_id": client_id})
    return make


@pytest.fixture
def driver_headers():
    def make(driver_id):
        return _headers({"sub": f"driver-{driver_id}", "user_id": driver_id, "role": "DRIVER"})
    return make


# Domain fixtures

@pytest.fixture
def repo():
    return InMemoryFleetRepository()


@pytest.fixture
def registry(repo):
    return TruckRegistry(repo)


@pytest.fixture
def ledger(repo):
    return AllocationLedger(repo)


@pytest.fixture
def resolver(repo):
    return BookingConflictResolver(repo, warning_days=30)


@pytest.fixture
def booking_service(repo, resolver):
    return BookingService(repo, resolver)


@pytest.fixture
def make_truck(registry):
    counter = {"n": 0}

    async def make(truck_type=TruckType.MINI_TRUCK, registration_expiry_date=FAR_EXPIRY, plate=None, **kwargs):
        counter["n"] += 1
        return await registry.create_truck(
            plate=plate or f"TST {counter['n']:04d}",
            truck_type=truck_type,
            registration_expiry_date=registration_expiry_date,
            **kwargs
        )
    return make


@pytest.fixture
def make_client(repo):
    async def make(name="Acme Logistics", is_active=True):
        return await repo.add_client(Client(name=name, is_active=is_active))
    return make
