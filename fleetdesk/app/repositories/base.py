"""
Fleet Repository Port.

Persistence interface consumed by the registry, ledger and booking
services. The production implementation is SQLAlchemy-backed
(see sql_repository.py); tests use an in-memory implementation.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from typing import AsyncContextManager, List, Optional, Tuple

from fleetdesk.app.models.truck import Truck
from fleetdesk.app.models.client import Client
from fleetdesk.app.models.client_truck_allocation import ClientTruckAllocation
from fleetdesk.app.models.delivery import Delivery
from fleetdesk.app.models.delivery_enums import DeliveryStatus
from fleetdesk.app.models.truck_enums import (
    TruckType,
    AllocationStatus,
    OperationalStatus,
    AvailabilityStatus,
    LegacyTruckStatus,
)


@dataclass
class TruckQuery:
    """Shared list contract for trucks: status filters, search text, pagination."""
    truck_type: Optional[TruckType] = None
    allocation_status: Optional[AllocationStatus] = None
    operational_status: Optional[OperationalStatus] = None
    availability_status: Optional[AvailabilityStatus] = None
    truck_status: Optional[LegacyTruckStatus] = None
    search: Optional[str] = None
    page: int = 1
    page_size: int = 50

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


@dataclass
class DeliveryQuery:
    """Shared list contract for deliveries."""
    client_id: Optional[int] = None
    truck_id: Optional[int] = None
    driver_id: Optional[int] = None
    status: Optional[DeliveryStatus] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    page: int = 1
    page_size: int = 50

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


class FleetRepository(ABC):
    """
    Storage port for trucks, clients, allocation edges and deliveries.

    Implementations raise InfrastructureError for storage failures and
    AlreadyAllocatedError when an edge insert violates uniqueness.
    """

    # Units of work

    @abstractmethod
    def truck_lock(self, truck_id: int) -> AsyncContextManager[None]:
        """Critical section for a read-check-write on one truck."""

    @abstractmethod
    async def commit(self) -> None:
        ...

    @abstractmethod
    async def rollback(self) -> None:
        ...

    @abstractmethod
    async def refresh(self, instance) -> None:
        """Reload server-generated columns (timestamps) after a commit."""

    # Trucks

    @abstractmethod
    async def get_truck(self, truck_id: int, for_update: bool = False) -> Optional[Truck]:
        ...

    @abstractmethod
    async def get_truck_by_plate(self, plate: str) -> Optional[Truck]:
        ...

    @abstractmethod
    async def list_trucks(self, query: TruckQuery) -> Tuple[List[Truck], int]:
        ...

    @abstractmethod
    async def list_trucks_expiring_before(self, cutoff: date) -> List[Truck]:
        """Trucks whose registration expires on or before the cutoff."""

    @abstractmethod
    async def add_truck(self, truck: Truck) -> Truck:
        ...

    # Clients

    @abstractmethod
    async def get_client(self, client_id: int) -> Optional[Client]:
        ...

    @abstractmethod
    async def list_clients(self, offset: int, limit: int) -> Tuple[List[Client], int]:
        ...

    @abstractmethod
    async def add_client(self, client: Client) -> Client:
        ...

    # Allocation edges

    @abstractmethod
    async def get_allocation(self, client_id: int, truck_id: int) -> Optional[ClientTruckAllocation]:
        ...

    @abstractmethod
    async def add_allocation(self, allocation: ClientTruckAllocation) -> ClientTruckAllocation:
        ...

    @abstractmethod
    async def delete_allocation(self, allocation: ClientTruckAllocation) -> None:
        ...

    @abstractmethod
    async def list_client_trucks(self, client_id: int, truck_type: Optional[TruckType] = None) -> List[Truck]:
        """Trucks holding an edge to this client, ordered by truck id."""

    @abstractmethod
    async def list_trucks_not_allocated_to(
        self,
        client_id: int,
        truck_type: Optional[TruckType] = None
    ) -> List[Truck]:
        """All trucks without an edge to this client, ordered by truck id."""

    @abstractmethod
    async def list_truck_clients(self, truck_id: int) -> List[Client]:
        ...

    # Deliveries

    @abstractmethod
    async def get_delivery(self, delivery_id: int, for_update: bool = False) -> Optional[Delivery]:
        ...

    @abstractmethod
    async def list_deliveries(self, query: DeliveryQuery) -> Tuple[List[Delivery], int]:
        ...

    @abstractmethod
    async def find_overlapping_deliveries(self, truck_id: int, start: date, end: date) -> List[Delivery]:
        """Non-cancelled deliveries of the truck whose window intersects [start, end]."""

    @abstractmethod
    async def add_delivery(self, delivery: Delivery) -> Delivery:
        ...

    @abstractmethod
    async def list_truck_bookings(self, truck_id: int, date_from: Optional[date] = None) -> List[Delivery]:
        """Non-cancelled deliveries of the truck still running on or after date_from, by date."""
