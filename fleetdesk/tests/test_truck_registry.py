"""
Truck registry: creation, details, status axes and registration feed.
"""

from datetime import date

import pytest

from fleetdesk.app.core.exceptions import (
    AlreadyExistsError,
    BusinessValidationError,
    ResourceNotFoundError,
)
from fleetdesk.app.models.truck_enums import (
    TruckType,
    AllocationStatus,
    OperationalStatus,
    AvailabilityStatus,
    LegacyTruckStatus,
    RegistrationState,
)
from fleetdesk.app.repositories.base import TruckQuery


@pytest.mark.asyncio
async def test_create_truck_derives_capacity_and_defaults(registry):
    truck = await registry.create_truck(
        plate="  ka 01  ab 1234 ",
        truck_type=TruckType.SIX_WHEELER,
        registration_expiry_date=date(2030, 1, 1),
        brand="Tata",
    )

    assert truck.plate == "KA 01 AB 1234"
    assert truck.capacity_tons == 4
    assert truck.allocation_status == AllocationStatus.AVAILABLE
    assert truck.operational_status == OperationalStatus.ACTIVE
    assert truck.availability_status == AvailabilityStatus.FREE
    assert truck.truck_status == LegacyTruckStatus.AVAILABLE
    assert truck.total_deliveries == 0


@pytest.mark.asyncio
async def test_duplicate_plate_rejected(registry, make_truck):
    await make_truck(plate="MH 12 XY 0001")

    with pytest.raises(AlreadyExistsError):
        await registry.create_truck(
            plate="mh 12 xy 0001",
            truck_type=TruckType.MINI_TRUCK,
            registration_expiry_date=date(2030, 1, 1),
        )


@pytest.mark.asyncio
async def test_expiry_before_registration_rejected(registry):
    with pytest.raises(BusinessValidationError):
        await registry.create_truck(
            plate="DL 1 0001",
            truck_type=TruckType.MINI_TRUCK,
            registration_date=date(2024, 5, 1),
            registration_expiry_date=date(2024, 4, 1),
        )


@pytest.mark.asyncio
async def test_type_change_recomputes_capacity(registry, make_truck):
    truck = await make_truck(truck_type=TruckType.MINI_TRUCK)

    updated = await registry.update_details(truck.id, {"truck_type": TruckType.TEN_WHEELER, "brand": "Ashok"})

    assert updated.truck_type == TruckType.TEN_WHEELER
    assert updated.capacity_tons == 10
    assert updated.brand == "Ashok"


@pytest.mark.asyncio
async def test_plate_cannot_change(registry, make_truck):
    truck = await make_truck()

    with pytest.raises(BusinessValidationError):
        await registry.update_details(truck.id, {"plate": "NEW 0001"})


@pytest.mark.asyncio
async def test_capacity_is_not_an_input(registry, make_truck):
    truck = await make_truck()

    with pytest.raises(BusinessValidationError):
        await registry.update_details(truck.id, {"capacity_tons": 99})


@pytest.mark.asyncio
async def test_update_status_sets_only_supplied_axes(registry, make_truck):
    truck = await make_truck()

    updated = await registry.update_status(truck.id, {"operational_status": "maintenance", "allocation_status": None})

    assert updated.operational_status == OperationalStatus.MAINTENANCE
    assert updated.allocation_status == AllocationStatus.AVAILABLE
    assert updated.availability_status == AvailabilityStatus.FREE
    assert updated.truck_status == LegacyTruckStatus.MAINTENANCE


@pytest.mark.asyncio
async def test_update_status_rejects_empty_update(registry, make_truck):
    truck = await make_truck()

    with pytest.raises(BusinessValidationError):
        await registry.update_status(truck.id, {})


@pytest.mark.asyncio
async def test_update_status_unknown_truck(registry):
    with pytest.raises(ResourceNotFoundError):
        await registry.update_status(404, {"availability_status": "busy"})


@pytest.mark.asyncio
async def test_list_filters_by_derived_status_and_search(registry, make_truck):
    busy = await make_truck(brand="Eicher")
    await make_truck(brand="Tata")
    await registry.update_status(busy.id, {"availability_status": "busy"})

    on_delivery, total = await registry.list_trucks(TruckQuery(truck_status=LegacyTruckStatus.ON_DELIVERY))
    assert total == 1
    assert on_delivery[0].id == busy.id

    found, total = await registry.list_trucks(TruckQuery(search="tata"))
    assert total == 1
    assert found[0].brand == "Tata"


@pytest.mark.asyncio
async def test_list_paginates_in_id_order(registry, make_truck):
    for _ in range(5):
        await make_truck()

    page, total = await registry.list_trucks(TruckQuery(page=2, page_size=2))

    assert total == 5
    assert [t.id for t in page] == [3, 4]


@pytest.mark.asyncio
async def test_expiring_registrations_feed(registry, make_truck):
    today = date(2024, 6, 1)
    lapsed = await make_truck(registration_expiry_date=date(2024, 5, 20))
    soon = await make_truck(registration_expiry_date=date(2024, 6, 20))
    await make_truck(registration_expiry_date=date(2025, 1, 1))

    infos = await registry.list_expiring_registrations(days_ahead=30, today=today)

    assert [(i.truck.id, i.state) for i in infos] == [
        (lapsed.id, RegistrationState.EXPIRED),
        (soon.id, RegistrationState.EXPIRING),
    ]
    assert infos[1].days_remaining == 19
