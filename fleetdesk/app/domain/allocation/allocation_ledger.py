"""
Allocation Ledger (Domain Logic).

Many-to-many Truck -> Client edges. An edge means "this truck is offered
to this client for booking"; it says nothing about dates. One truck can be
edged to many clients (shared fleet), but never twice to the same client.

Allocation is a long-lived commercial relationship, so no operational or
availability screening happens here. That is the booking resolver's job.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from fleetdesk.app.core.exceptions import (
    AlreadyAllocatedError,
    BusinessValidationError,
    NotAllocatedError,
    ResourceNotFoundError,
)
from fleetdesk.app.models.allocation_enums import AllocationFailure
from fleetdesk.app.models.client import Client
from fleetdesk.app.models.client_truck_allocation import ClientTruckAllocation
from fleetdesk.app.models.truck import Truck
from fleetdesk.app.models.truck_enums import TruckType
from fleetdesk.app.repositories.base import FleetRepository

logger = logging.getLogger("fleetdesk.allocation")


@dataclass
class FailedAllocation:
    truck_id: int
    reason: AllocationFailure
    message: str


@dataclass
class AllocationOutcome:
    successful: List[int] = field(default_factory=list)
    failed: List[FailedAllocation] = field(default_factory=list)


@dataclass
class TypeAllocationOutcome:
    truck_type: TruckType
    requested: int
    allocated: List[int] = field(default_factory=list)

    @property
    def shortfall(self) -> int:
        return self.requested - len(self.allocated)


class AllocationLedger:

    def __init__(self, repo: FleetRepository):
        self.repo = repo

    async def _require_client(self, client_id: int) -> Client:
        client = await self.repo.get_client(client_id)
        if not client:
            raise ResourceNotFoundError("Client", client_id)
        return client

    async def _allocate_one(self, client_id: int, truck_id: int, actor_id: Optional[int]) -> ClientTruckAllocation:
        """
        Create one edge as an atomic check-and-write.

        Raises:
            ResourceNotFoundError: If the truck does not exist
            AlreadyAllocatedError: If the edge already exists
        """
        async with self.repo.truck_lock(truck_id):
            truck = await self.repo.get_truck(truck_id, for_update=True)
            if not truck:
                raise ResourceNotFoundError("Truck", truck_id)

            if await self.repo.get_allocation(client_id, truck_id):
                raise AlreadyAllocatedError(client_id, truck_id)

            allocation = await self.repo.add_allocation(
                ClientTruckAllocation(client_id=client_id, truck_id=truck_id, allocated_by=actor_id)
            )
            await self.repo.commit()
            return allocation

    async def allocate_trucks(
        self,
        client_id: int,
        truck_ids: List[int],
        actor_id: Optional[int] = None
    ) -> AllocationOutcome:
        """
        Allocate trucks to a client one by one.

        Each truck is its own unit of work: a failure is recorded against
        that truck and the rest of the list still gets processed.

        Raises:
            ResourceNotFoundError: If the client does not exist
            BusinessValidationError: If no truck ids are given
        """
        if not truck_ids:
            raise BusinessValidationError("At least one truck id is required")
        await self._require_client(client_id)

        outcome = AllocationOutcome()
        for truck_id in truck_ids:
            try:
                await self._allocate_one(client_id, truck_id, actor_id)
            except ResourceNotFoundError as e:
                outcome.failed.append(FailedAllocation(truck_id, AllocationFailure.NOT_FOUND, e.message))
            except AlreadyAllocatedError as e:
                outcome.failed.append(FailedAllocation(truck_id, AllocationFailure.ALREADY_ALLOCATED, e.message))
            else:
                outcome.successful.append(truck_id)

        logger.info(
            "Client %s allocation: %d allocated, %d failed",
            client_id, len(outcome.successful), len(outcome.failed)
        )
        return outcome

    async def allocate_by_type(
        self,
        client_id: int,
        truck_type: TruckType,
        quantity: int,
        actor_id: Optional[int] = None
    ) -> TypeAllocationOutcome:
        """
        Allocate up to `quantity` trucks of a type not yet edged to this client.

        Trucks allocated to other clients stay eligible. When fewer trucks
        are eligible than requested, all of them are allocated and the
        difference is reported as shortfall.
        """
        if quantity is None or quantity < 1:
            raise BusinessValidationError("Quantity must be at least 1", details={"quantity": quantity})
        truck_type = TruckType(truck_type)
        await self._require_client(client_id)

        outcome = TypeAllocationOutcome(truck_type=truck_type, requested=quantity)
        candidate_ids = [t.id for t in await self.repo.list_trucks_not_allocated_to(client_id, truck_type)]

        for truck_id in candidate_ids:
            if len(outcome.allocated) >= quantity:
                break
            try:
                await self._allocate_one(client_id, truck_id, actor_id)
            except AlreadyAllocatedError:
                # Taken by a concurrent request since the candidate read
                continue
            outcome.allocated.append(truck_id)

        if outcome.shortfall:
            logger.warning(
                "Client %s requested %d x %s, only %d eligible",
                client_id, quantity, truck_type.value, len(outcome.allocated)
            )
        return outcome

    async def deallocate(self, client_id: int, truck_id: int) -> None:
        """
        Remove one edge.

        Raises:
            NotAllocatedError: If the edge does not exist
        """
        async with self.repo.truck_lock(truck_id):
            allocation = await self.repo.get_allocation(client_id, truck_id)
            if not allocation:
                raise NotAllocatedError(client_id, truck_id)
            await self.repo.delete_allocation(allocation)
            await self.repo.commit()

        logger.info("Truck %s deallocated from client %s", truck_id, client_id)

    async def deallocate_by_type(self, client_id: int, truck_type: TruckType) -> List[int]:
        """
        Remove every edge between the client and trucks of a type.

        Returns the ids of the trucks released; an empty list is not an error.
        """
        truck_type = TruckType(truck_type)
        await self._require_client(client_id)

        released = []
        truck_ids = [t.id for t in await self.repo.list_client_trucks(client_id, truck_type)]
        for truck_id in truck_ids:
            try:
                await self.deallocate(client_id, truck_id)
            except NotAllocatedError:
                # Removed by a concurrent request
                continue
            released.append(truck_id)
        return released

    async def list_available_for_client(self, client_id: int) -> List[Truck]:
        """All trucks minus those already edged to this client."""
        await self._require_client(client_id)
        return await self.repo.list_trucks_not_allocated_to(client_id)

    async def list_client_trucks(self, client_id: int) -> List[Truck]:
        await self._require_client(client_id)
        return await self.repo.list_client_trucks(client_id)

    async def list_truck_clients(self, truck_id: int) -> List[Client]:
        if not await self.repo.get_truck(truck_id):
            raise ResourceNotFoundError("Truck", truck_id)
        return await self.repo.list_truck_clients(truck_id)
