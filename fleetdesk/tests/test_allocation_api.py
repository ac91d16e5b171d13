"""
Truck registry and allocation endpoints.
"""

import pytest

API = "/v1"


async def create_truck(client, headers, plate, truck_type="mini truck", expiry="2031-01-01"):
    response = await client.post(f"{API}/admin/trucks", json={
        "plate": plate,
        "truck_type": truck_type,
        "registration_expiry_date": expiry,
    }, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


async def create_client_record(client, headers, name="Acme Logistics"):
    response = await client.post(f"{API}/admin/clients", json={"name": name}, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.asyncio
async def test_create_truck_returns_derived_fields(client, admin_headers):
    truck = await create_truck(client, admin_headers, "ka 01 ab 0001", truck_type="8 wheeler")

    assert truck["plate"] == "KA 01 AB 0001"
    assert truck["capacity_tons"] == 6
    assert truck["truck_status"] == "available"
    assert truck["status_summary"] == "Available for Allocation"


@pytest.mark.asyncio
async def test_capacity_cannot_be_supplied(client, admin_headers):
    truck = await create_truck(client, admin_headers, "KA 01 0002")

    response = await client.patch(
        f"{API}/admin/trucks/{truck['id']}", json={"truck_type": "10 wheeler"}, headers=admin_headers
    )

    assert response.status_code == 200
    assert response.json()["capacity_tons"] == 10


@pytest.mark.asyncio
async def test_duplicate_plate_conflict(client, admin_headers):
    await create_truck(client, admin_headers, "KA 01 0003")

    response = await client.post(f"{API}/admin/trucks", json={
        "plate": "ka 01 0003", "truck_type": "mini truck", "registration_expiry_date": "2031-01-01"
    }, headers=admin_headers)

    assert response.status_code == 409
    assert response.json()["error_code"] == "ERR_CONFLICT_001"


@pytest.mark.asyncio
async def test_status_update_and_legacy_filter(client, admin_headers):
    truck = await create_truck(client, admin_headers, "KA 01 0004")
    await create_truck(client, admin_headers, "KA 01 0005")

    response = await client.patch(
        f"{API}/admin/trucks/{truck['id']}/status",
        json={"operational_status": "maintenance"},
        headers=admin_headers
    )
    assert response.status_code == 200
    body = response.json()
    assert body["truck_status"] == "maintenance"
    assert body["availability_status"] == "free"

    listed = await client.get(f"{API}/admin/trucks", params={"truck_status": "maintenance"}, headers=admin_headers)
    assert listed.json()["total"] == 1
    assert listed.json()["trucks"][0]["id"] == truck["id"]


LEGACY_STATUS_AXES = {
    "available": {},
    "allocated": {"allocation_status": "allocated"},
    "scheduled": {"availability_status": "scheduled"},
    "on-delivery": {"availability_status": "busy"},
    "maintenance": {"operational_status": "out-of-service"},
}


@pytest.mark.asyncio
@pytest.mark.parametrize("legacy_status", ["available", "allocated", "scheduled", "on-delivery", "maintenance"])
async def test_legacy_status_filter_matches_one_truck(client, admin_headers, legacy_status):
    ids = {}
    for n, (status, axes) in enumerate(LEGACY_STATUS_AXES.items()):
        truck = await create_truck(client, admin_headers, f"LEG {n:04d}")
        if axes:
            response = await client.patch(
                f"{API}/admin/trucks/{truck['id']}/status", json=axes, headers=admin_headers
            )
            assert response.json()["truck_status"] == status
        ids[status] = truck["id"]

    listed = await client.get(f"{API}/admin/trucks", params={"truck_status": legacy_status}, headers=admin_headers)

    assert listed.status_code == 200
    assert [t["id"] for t in listed.json()["trucks"]] == [ids[legacy_status]]


@pytest.mark.asyncio
async def test_truck_type_cannot_be_cleared(client, admin_headers):
    truck = await create_truck(client, admin_headers, "KA 01 0007", truck_type="6 wheeler")

    response = await client.patch(
        f"{API}/admin/trucks/{truck['id']}", json={"truck_type": None}, headers=admin_headers
    )

    assert response.status_code == 422
    assert response.json()["error_code"] == "ERR_VALIDATION_001"
    fetched = await client.get(f"{API}/admin/trucks/{truck['id']}", headers=admin_headers)
    assert fetched.json()["truck_type"] == "6 wheeler"
    assert fetched.json()["capacity_tons"] == 4


@pytest.mark.asyncio
async def test_empty_status_update_rejected(client, admin_headers):
    truck = await create_truck(client, admin_headers, "KA 01 0006")

    response = await client.patch(f"{API}/admin/trucks/{truck['id']}/status", json={}, headers=admin_headers)

    assert response.status_code == 422
    assert response.json()["error_code"] == "ERR_VALIDATION_001"


@pytest.mark.asyncio
async def test_unknown_truck_is_404(client, admin_headers):
    response = await client.get(f"{API}/admin/trucks/9999", headers=admin_headers)

    assert response.status_code == 404
    assert response.json()["error_code"] == "ERR_NOT_FOUND_001"


@pytest.mark.asyncio
async def test_registration_expiring_feed(client, admin_headers):
    await create_truck(client, admin_headers, "OLD 0001", expiry="2000-01-01")
    await create_truck(client, admin_headers, "NEW 0001", expiry="2099-01-01")

    response = await client.get(f"{API}/admin/trucks/registration-expiring", headers=admin_headers)

    assert response.status_code == 200
    feed = response.json()
    assert [item["plate"] for item in feed] == ["OLD 0001"]
    assert feed[0]["state"] == "expired"


@pytest.mark.asyncio
async def test_batch_allocation_partial_success(client, admin_headers):
    truck = await create_truck(client, admin_headers, "KA 02 0001")
    acme = await create_client_record(client, admin_headers)

    response = await client.post(
        f"{API}/admin/clients/{acme['id']}/allocations",
        json={"truck_ids": [truck["id"], 9999]},
        headers=admin_headers
    )

    assert response.status_code == 200
    body = response.json()
    assert body["successful"] == [truck["id"]]
    assert body["failed"][0]["truck_id"] == 9999
    assert body["failed"][0]["reason"] == "NOT_FOUND"

    again = await client.post(
        f"{API}/admin/clients/{acme['id']}/allocations",
        json={"truck_ids": [truck["id"]]},
        headers=admin_headers
    )
    assert again.json()["failed"][0]["reason"] == "ALREADY_ALLOCATED"


@pytest.mark.asyncio
async def test_truck_shared_across_clients(client, admin_headers):
    truck = await create_truck(client, admin_headers, "KA 02 0002")
    acme = await create_client_record(client, admin_headers, "Acme")
    globex = await create_client_record(client, admin_headers, "Globex")

    for c in (acme, globex):
        response = await client.post(
            f"{API}/admin/clients/{c['id']}/allocations", json={"truck_ids": [truck["id"]]}, headers=admin_headers
        )
        assert response.json()["successful"] == [truck["id"]]

    holders = await client.get(f"{API}/admin/trucks/{truck['id']}/clients", headers=admin_headers)
    assert [c["name"] for c in holders.json()] == ["Acme", "Globex"]


@pytest.mark.asyncio
async def test_allocate_by_type_and_deallocate_by_type(client, admin_headers):
    for n in range(3):
        await create_truck(client, admin_headers, f"MINI {n}")
    await create_truck(client, admin_headers, "BIG 1", truck_type="10 wheeler")
    acme = await create_client_record(client, admin_headers)

    response = await client.post(
        f"{API}/admin/clients/{acme['id']}/allocations/by-type",
        json={"truck_type": "mini truck", "quantity": 5},
        headers=admin_headers
    )
    assert response.status_code == 200
    body = response.json()
    assert len(body["allocated"]) == 3
    assert body["shortfall"] == 2

    available = await client.get(f"{API}/admin/clients/{acme['id']}/available-trucks", headers=admin_headers)
    assert [t["plate"] for t in available.json()] == ["BIG 1"]

    released = await client.delete(
        f"{API}/admin/clients/{acme['id']}/allocations/by-type/mini truck", headers=admin_headers
    )
    assert released.json()["count"] == 3

    none_left = await client.delete(
        f"{API}/admin/clients/{acme['id']}/allocations/by-type/mini truck", headers=admin_headers
    )
    assert none_left.status_code == 200
    assert none_left.json() == {"count": 0, "truck_ids": []}


@pytest.mark.asyncio
async def test_deallocate_single_truck(client, admin_headers):
    truck = await create_truck(client, admin_headers, "KA 02 0003")
    acme = await create_client_record(client, admin_headers)
    await client.post(
        f"{API}/admin/clients/{acme['id']}/allocations", json={"truck_ids": [truck["id"]]}, headers=admin_headers
    )

    response = await client.delete(f"{API}/admin/clients/{acme['id']}/allocations/{truck['id']}", headers=admin_headers)
    assert response.status_code == 204

    missing = await client.delete(f"{API}/admin/clients/{acme['id']}/allocations/{truck['id']}", headers=admin_headers)
    assert missing.status_code == 409
    assert missing.json()["error_code"] == "ERR_ALLOC_002"


@pytest.mark.asyncio
async def test_allocation_is_audited(client, admin_headers):
    truck = await create_truck(client, admin_headers, "KA 02 0004")
    acme = await create_client_record(client, admin_headers)
    await client.post(
        f"{API}/admin/clients/{acme['id']}/allocations", json={"truck_ids": [truck["id"]]}, headers=admin_headers
    )

    response = await client.get(
        f"{API}/admin/audit-logs", params={"action": "TRUCK_ALLOCATED"}, headers=admin_headers
    )

    logs = response.json()["logs"]
    assert len(logs) == 1
    assert logs[0]["entity_id"] == truck["id"]
    assert logs[0]["meta_data"] == {"client_id": acme["id"]}


@pytest.mark.asyncio
async def test_admin_routes_require_admin(client, client_headers):
    response = await client.get(f"{API}/admin/trucks", headers=client_headers(1))
    assert response.status_code == 403
    assert response.json()["error_code"] == "ERR_PERM_001"

    anonymous = await client.get(f"{API}/admin/trucks")
    assert anonymous.status_code in (401, 403)
