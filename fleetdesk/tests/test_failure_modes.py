"""
Failure Injection Tests.

Storage and lock backend failures surface as retryable 503s; the
database unique constraint still holds when the lock is bypassed.
"""

from datetime import date

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError, LockError
from sqlalchemy.exc import OperationalError

from fleetdesk.app.core.config import settings
from fleetdesk.app.core.exceptions import AlreadyAllocatedError, InfrastructureError
from fleetdesk.app.models.client import Client
from fleetdesk.app.models.client_truck_allocation import ClientTruckAllocation
from fleetdesk.app.models.truck import Truck
from fleetdesk.app.models.truck_enums import TruckType
from fleetdesk.app.repositories.sql_repository import SqlFleetRepository

API = "/v1"


async def seed_edge_parties(db_session):
    truck = Truck(
        plate="FAIL 0001",
        truck_type=TruckType.MINI_TRUCK,
        capacity_tons=2,
        registration_expiry_date=date(2031, 1, 1),
    )
    acme = Client(name="Acme")
    db_session.add_all([truck, acme])
    await db_session.commit()
    return truck, acme


@pytest.mark.asyncio
async def test_unique_constraint_backs_the_lock(db_session):
    """Two edge inserts for the same pair: the second maps to AlreadyAllocatedError."""
    truck, acme = await seed_edge_parties(db_session)
    repo = SqlFleetRepository(db_session)

    await repo.add_allocation(ClientTruckAllocation(client_id=acme.id, truck_id=truck.id))
    await repo.commit()

    with pytest.raises(AlreadyAllocatedError):
        await repo.add_allocation(ClientTruckAllocation(client_id=acme.id, truck_id=truck.id))


@pytest.mark.asyncio
async def test_storage_failure_becomes_infrastructure_error(db_session, mocker):
    repo = SqlFleetRepository(db_session)
    mocker.patch.object(
        db_session, "execute", side_effect=OperationalError("SELECT", {}, Exception("database is down"))
    )

    with pytest.raises(InfrastructureError) as exc_info:
        await repo.get_truck(1)

    assert exc_info.value.status_code == 503
    assert exc_info.value.details == {"operation": "get_truck"}


@pytest.mark.asyncio
async def test_lock_backend_down_returns_503(client, admin_headers, db_session, mock_redis):
    truck, acme = await seed_edge_parties(db_session)
    mock_redis.fail_locks = True

    response = await client.post(
        f"{API}/admin/clients/{acme.id}/allocations", json={"truck_ids": [truck.id]}, headers=admin_headers
    )

    assert response.status_code == 503
    assert response.json()["error_code"] == "ERR_INFRA_001"


@pytest.mark.asyncio
async def test_lock_wait_timeout_returns_503(client, admin_headers, db_session, mock_redis, monkeypatch):
    truck, acme = await seed_edge_parties(db_session)
    monkeypatch.setattr(settings, "truck_lock_wait_seconds", 0.05)

    held = mock_redis.lock(f"lock:truck:{truck.id}")
    assert await held.acquire()
    try:
        response = await client.post(
            f"{API}/admin/clients/{acme.id}/allocations", json={"truck_ids": [truck.id]}, headers=admin_headers
        )
    finally:
        await held.release()

    assert response.status_code == 503
    assert response.json()["details"] == {"truck_id": truck.id}


@pytest.mark.asyncio
async def test_expired_lock_on_release_is_not_fatal(client, admin_headers, db_session, mock_redis, mocker):
    truck, acme = await seed_edge_parties(db_session)
    lock_class = type(mock_redis.lock("probe"))
    mocker.patch.object(lock_class, "release", side_effect=LockError("lock expired"))

    response = await client.post(
        f"{API}/admin/clients/{acme.id}/allocations", json={"truck_ids": [truck.id]}, headers=admin_headers
    )

    assert response.status_code == 200
    assert response.json()["successful"] == [truck.id]


@pytest.mark.asyncio
async def test_health_reports_degraded_without_redis(client, mock_redis, mocker):
    mock_redis.ping = mocker.AsyncMock(side_effect=RedisConnectionError("down"))

    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "degraded"


@pytest.mark.asyncio
async def test_invalid_token_rejected(client):
    response = await client.get(f"{API}/admin/trucks", headers={"Authorization": "Bearer not-a-token"})

    assert response.status_code == 401
    assert response.json()["error_code"] == "ERR_AUTH_001"
