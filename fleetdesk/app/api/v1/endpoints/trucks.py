"""
Truck Registry API Endpoints.

Admin-only management of truck records and their status axes.
"""

from typing import Optional
from fastapi import APIRouter, Depends, status, Query, Path
from sqlalchemy.ext.asyncio import AsyncSession
from fleetdesk.app.core.config import settings
from fleetdesk.app.core.dependencies import get_truck_registry, get_allocation_ledger
from fleetdesk.app.core.guards import require_admin
from fleetdesk.app.db.session import get_db
from fleetdesk.app.domain.allocation.allocation_ledger import AllocationLedger
from fleetdesk.app.domain.registry.registry_service import TruckRegistry
from fleetdesk.app.models.truck_enums import (
    TruckType,
    AllocationStatus,
    OperationalStatus,
    AvailabilityStatus,
    LegacyTruckStatus,
)
from fleetdesk.app.repositories.base import TruckQuery
from fleetdesk.app.schemas.client import ClientResponse
from fleetdesk.app.schemas.truck import (
    TruckCreate,
    TruckUpdate,
    TruckStatusUpdate,
    TruckResponse,
    TruckListResponse,
    RegistrationStatusResponse,
)
from fleetdesk.app.services.audit import log_actor_event, AuditAction

router = APIRouter(prefix="/admin/trucks", tags=["Admin - Trucks"])


@router.post("", response_model=TruckResponse, status_code=status.HTTP_201_CREATED)
async def create_truck(
    truck_data: TruckCreate,
    admin: dict = Depends(require_admin),
    registry: TruckRegistry = Depends(get_truck_registry),
    db: AsyncSession = Depends(get_db)
):
    """
    Register a new truck.

    Capacity is derived from the truck type; a duplicate plate returns 409.
    """
    truck = await registry.create_truck(**truck_data.model_dump())

    await log_actor_event(
        db, admin, AuditAction.TRUCK_CREATED, "truck", truck.id,
        metadata={"plate": truck.plate, "truck_type": truck.truck_type.value}
    )

    return TruckResponse.model_validate(truck)


@router.get("", response_model=TruckListResponse)
async def list_trucks(
    truck_type: Optional[TruckType] = Query(None),
    allocation_status: Optional[AllocationStatus] = Query(None),
    operational_status: Optional[OperationalStatus] = Query(None),
    availability_status: Optional[AvailabilityStatus] = Query(None),
    truck_status: Optional[LegacyTruckStatus] = Query(None, description="Derived legacy status"),
    search: Optional[str] = Query(None, max_length=100, description="Plate or brand contains"),
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(settings.default_page_size, ge=1, le=100, description="Items per page"),
    admin: dict = Depends(require_admin),
    registry: TruckRegistry = Depends(get_truck_registry)
):
    """List trucks with status filters, free-text search and pagination."""
    query = TruckQuery(
        truck_type=truck_type,
        allocation_status=allocation_status,
        operational_status=operational_status,
        availability_status=availability_status,
        truck_status=truck_status,
        search=search,
        page=page,
        page_size=page_size,
    )
    trucks, total = await registry.list_trucks(query)

    return TruckListResponse(
        trucks=[TruckResponse.model_validate(t) for t in trucks],
        total=total,
        page=page,
        page_size=page_size
    )


@router.get("/registration-expiring", response_model=list[RegistrationStatusResponse])
async def list_expiring_registrations(
    days_ahead: int = Query(settings.registration_warning_days, ge=0, le=365),
    admin: dict = Depends(require_admin),
    registry: TruckRegistry = Depends(get_truck_registry)
):
    """Trucks whose registration has lapsed or lapses within `days_ahead` days."""
    infos = await registry.list_expiring_registrations(days_ahead)
    return [
        RegistrationStatusResponse(
            truck_id=info.truck.id,
            plate=info.truck.plate,
            registration_expiry_date=info.truck.registration_expiry_date,
            state=info.state,
            days_remaining=info.days_remaining,
        )
        for info in infos
    ]


@router.get("/{truck_id}", response_model=TruckResponse)
async def get_truck(
    truck_id: int = Path(..., ge=1),
    admin: dict = Depends(require_admin),
    registry: TruckRegistry = Depends(get_truck_registry)
):
    truck = await registry.get_truck(truck_id)
    return TruckResponse.model_validate(truck)


@router.patch("/{truck_id}", response_model=TruckResponse)
async def update_truck(
    truck_data: TruckUpdate,
    truck_id: int = Path(..., ge=1),
    admin: dict = Depends(require_admin),
    registry: TruckRegistry = Depends(get_truck_registry),
    db: AsyncSession = Depends(get_db)
):
    """Update truck details. Changing the type recomputes capacity."""
    changes = truck_data.model_dump(exclude_unset=True)
    truck = await registry.update_details(truck_id, changes)

    await log_actor_event(
        db, admin, AuditAction.TRUCK_UPDATED, "truck", truck.id,
        metadata={"fields": sorted(changes)}
    )

    return TruckResponse.model_validate(truck)


@router.patch("/{truck_id}/status", response_model=TruckResponse)
async def update_truck_status(
    status_data: TruckStatusUpdate,
    truck_id: int = Path(..., ge=1),
    admin: dict = Depends(require_admin),
    registry: TruckRegistry = Depends(get_truck_registry),
    db: AsyncSession = Depends(get_db)
):
    """
    Set one or more status axes.

    Axes left out of the body are untouched; an empty body returns 422.
    """
    changes = status_data.model_dump(exclude_none=True)
    truck = await registry.update_status(truck_id, changes)

    await log_actor_event(
        db, admin, AuditAction.TRUCK_STATUS_CHANGED, "truck", truck.id,
        metadata={
            **{field: value.value for field, value in changes.items()},
            "truck_status": truck.truck_status.value,
        }
    )

    return TruckResponse.model_validate(truck)


@router.get("/{truck_id}/clients", response_model=list[ClientResponse])
async def list_truck_clients(
    truck_id: int = Path(..., ge=1),
    admin: dict = Depends(require_admin),
    ledger: AllocationLedger = Depends(get_allocation_ledger)
):
    """Clients currently holding an allocation of this truck."""
    clients = await ledger.list_truck_clients(truck_id)
    return [ClientResponse.model_validate(c) for c in clients]
