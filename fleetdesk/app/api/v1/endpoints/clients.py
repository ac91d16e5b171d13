"""
Client & Allocation API Endpoints.

Admin-only. Client records are kept minimal; the allocation routes manage
the shared-fleet edges between clients and trucks.
"""

from fastapi import APIRouter, Depends, status, Query, Path
from sqlalchemy.ext.asyncio import AsyncSession
from fleetdesk.app.core.config import settings
from fleetdesk.app.core.dependencies import get_fleet_repository, get_allocation_ledger
from fleetdesk.app.core.exceptions import ResourceNotFoundError
from fleetdesk.app.core.guards import require_admin
from fleetdesk.app.db.session import get_db
from fleetdesk.app.domain.allocation.allocation_ledger import AllocationLedger
from fleetdesk.app.models.client import Client
from fleetdesk.app.models.truck_enums import TruckType
from fleetdesk.app.repositories.base import FleetRepository
from fleetdesk.app.schemas.allocation import (
    AllocateTrucksRequest,
    AllocateByTypeRequest,
    AllocationResultResponse,
    FailedAllocationResponse,
    TypeAllocationResultResponse,
    DeallocationResultResponse,
)
from fleetdesk.app.schemas.client import ClientCreate, ClientResponse, ClientListResponse
from fleetdesk.app.schemas.truck import TruckResponse
from fleetdesk.app.services.audit import log_actor_event, AuditAction

router = APIRouter(prefix="/admin/clients", tags=["Admin - Clients & Allocations"])


@router.post("", response_model=ClientResponse, status_code=status.HTTP_201_CREATED)
async def create_client(
    client_data: ClientCreate,
    admin: dict = Depends(require_admin),
    repo: FleetRepository = Depends(get_fleet_repository),
    db: AsyncSession = Depends(get_db)
):
    client = await repo.add_client(Client(name=client_data.name.strip(), is_active=client_data.is_active))
    await repo.commit()
    await repo.refresh(client)

    await log_actor_event(db, admin, AuditAction.CLIENT_CREATED, "client", client.id, metadata={"name": client.name})

    return ClientResponse.model_validate(client)


@router.get("", response_model=ClientListResponse)
async def list_clients(
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(settings.default_page_size, ge=1, le=100, description="Items per page"),
    admin: dict = Depends(require_admin),
    repo: FleetRepository = Depends(get_fleet_repository)
):
    clients, total = await repo.list_clients(offset=(page - 1) * page_size, limit=page_size)
    return ClientListResponse(
        clients=[ClientResponse.model_validate(c) for c in clients],
        total=total,
        page=page,
        page_size=page_size
    )


@router.get("/{client_id}", response_model=ClientResponse)
async def get_client(
    client_id: int = Path(..., ge=1),
    admin: dict = Depends(require_admin),
    repo: FleetRepository = Depends(get_fleet_repository)
):
    client = await repo.get_client(client_id)
    if not client:
        raise ResourceNotFoundError("Client", client_id)
    return ClientResponse.model_validate(client)


@router.post("/{client_id}/allocations", response_model=AllocationResultResponse)
async def allocate_trucks(
    request: AllocateTrucksRequest,
    client_id: int = Path(..., ge=1),
    admin: dict = Depends(require_admin),
    ledger: AllocationLedger = Depends(get_allocation_ledger),
    db: AsyncSession = Depends(get_db)
):
    """
    Allocate specific trucks to a client.

    Returns 200 even on partial success; each failed truck carries a
    reason (NOT_FOUND or ALREADY_ALLOCATED).
    """
    outcome = await ledger.allocate_trucks(client_id, request.truck_ids, actor_id=admin.get("user_id"))

    for truck_id in outcome.successful:
        await log_actor_event(db, admin, AuditAction.TRUCK_ALLOCATED, "truck", truck_id, metadata={"client_id": client_id})

    return AllocationResultResponse(
        successful=outcome.successful,
        failed=[
            FailedAllocationResponse(truck_id=f.truck_id, reason=f.reason, message=f.message)
            for f in outcome.failed
        ]
    )


@router.post("/{client_id}/allocations/by-type", response_model=TypeAllocationResultResponse)
async def allocate_by_type(
    request: AllocateByTypeRequest,
    client_id: int = Path(..., ge=1),
    admin: dict = Depends(require_admin),
    ledger: AllocationLedger = Depends(get_allocation_ledger),
    db: AsyncSession = Depends(get_db)
):
    """Allocate up to `quantity` trucks of a type; any shortfall is reported, not raised."""
    outcome = await ledger.allocate_by_type(
        client_id, request.truck_type, request.quantity, actor_id=admin.get("user_id")
    )

    for truck_id in outcome.allocated:
        await log_actor_event(
            db, admin, AuditAction.TRUCK_ALLOCATED, "truck", truck_id,
            metadata={"client_id": client_id, "by_type": outcome.truck_type.value}
        )

    return TypeAllocationResultResponse(
        truck_type=outcome.truck_type,
        requested=outcome.requested,
        allocated=outcome.allocated,
        shortfall=outcome.shortfall
    )


@router.delete("/{client_id}/allocations/by-type/{truck_type}", response_model=DeallocationResultResponse)
async def deallocate_by_type(
    truck_type: TruckType,
    client_id: int = Path(..., ge=1),
    admin: dict = Depends(require_admin),
    ledger: AllocationLedger = Depends(get_allocation_ledger),
    db: AsyncSession = Depends(get_db)
):
    """Remove every allocation of this type from the client; zero matches is fine."""
    released = await ledger.deallocate_by_type(client_id, truck_type)

    for truck_id in released:
        await log_actor_event(db, admin, AuditAction.TRUCK_DEALLOCATED, "truck", truck_id, metadata={"client_id": client_id})

    return DeallocationResultResponse(count=len(released), truck_ids=released)


@router.delete("/{client_id}/allocations/{truck_id}", status_code=status.HTTP_204_NO_CONTENT)
async def deallocate_truck(
    client_id: int = Path(..., ge=1),
    truck_id: int = Path(..., ge=1),
    admin: dict = Depends(require_admin),
    ledger: AllocationLedger = Depends(get_allocation_ledger),
    db: AsyncSession = Depends(get_db)
):
    await ledger.deallocate(client_id, truck_id)
    await log_actor_event(db, admin, AuditAction.TRUCK_DEALLOCATED, "truck", truck_id, metadata={"client_id": client_id})


@router.get("/{client_id}/allocations", response_model=list[TruckResponse])
async def list_client_trucks(
    client_id: int = Path(..., ge=1),
    admin: dict = Depends(require_admin),
    ledger: AllocationLedger = Depends(get_allocation_ledger)
):
    trucks = await ledger.list_client_trucks(client_id)
    return [TruckResponse.model_validate(t) for t in trucks]


@router.get("/{client_id}/available-trucks", response_model=list[TruckResponse])
async def list_available_trucks(
    client_id: int = Path(..., ge=1),
    admin: dict = Depends(require_admin),
    ledger: AllocationLedger = Depends(get_allocation_ledger)
):
    """All trucks not yet allocated to this client, regardless of status."""
    trucks = await ledger.list_available_for_client(client_id)
    return [TruckResponse.model_validate(t) for t in trucks]
