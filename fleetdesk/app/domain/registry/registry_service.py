"""
Truck Registry Service (Domain Logic).

Canonical truck records: creation, details, the three status axes and the
registration window. Capacity is derived from the type on every write.
"""

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Dict, List, Optional, Tuple

from fleetdesk.app.core.config import settings
from fleetdesk.app.core.exceptions import (
    AlreadyExistsError,
    BusinessValidationError,
    ResourceNotFoundError,
)
from fleetdesk.app.domain.registry.status_rules import capacity_for_type, registration_state
from fleetdesk.app.models.truck import Truck
from fleetdesk.app.models.truck_enums import (
    TruckType,
    AllocationStatus,
    OperationalStatus,
    AvailabilityStatus,
    RegistrationState,
)
from fleetdesk.app.repositories.base import FleetRepository, TruckQuery

logger = logging.getLogger("fleetdesk.registry")

STATUS_FIELDS = {
    "allocation_status": AllocationStatus,
    "operational_status": OperationalStatus,
    "availability_status": AvailabilityStatus,
}

DETAIL_FIELDS = ("truck_type", "brand", "model_year", "registration_date", "registration_expiry_date")


@dataclass
class RegistrationInfo:
    truck: Truck
    state: RegistrationState
    days_remaining: Optional[int]


def normalize_plate(plate: str) -> str:
    return " ".join(plate.split()).upper()


def _check_registration_dates(registration_date: Optional[date], expiry_date: Optional[date]):
    if expiry_date is None:
        raise BusinessValidationError("Registration expiry date is required")
    if registration_date and expiry_date < registration_date:
        raise BusinessValidationError(
            "Registration expiry date cannot be before the registration date",
            details={
                "registration_date": str(registration_date),
                "registration_expiry_date": str(expiry_date),
            }
        )


class TruckRegistry:

    def __init__(self, repo: FleetRepository):
        self.repo = repo

    async def create_truck(
        self,
        plate: str,
        truck_type: TruckType,
        registration_expiry_date: date,
        registration_date: Optional[date] = None,
        brand: Optional[str] = None,
        model_year: Optional[int] = None,
    ) -> Truck:
        """
        Register a new truck.

        New trucks start available / active / free. Capacity comes from the type.

        Raises:
            AlreadyExistsError: If the plate is already registered
            BusinessValidationError: If the registration window is inconsistent
        """
        plate = normalize_plate(plate or "")
        if not plate:
            raise BusinessValidationError("Plate is required")
        _check_registration_dates(registration_date, registration_expiry_date)

        if await self.repo.get_truck_by_plate(plate):
            raise AlreadyExistsError("Truck", "plate", plate)

        truck_type = TruckType(truck_type)
        truck = Truck(
            plate=plate,
            truck_type=truck_type,
            capacity_tons=capacity_for_type(truck_type),
            brand=brand,
            model_year=model_year,
            registration_date=registration_date,
            registration_expiry_date=registration_expiry_date,
            allocation_status=AllocationStatus.AVAILABLE,
            operational_status=OperationalStatus.ACTIVE,
            availability_status=AvailabilityStatus.FREE,
            total_deliveries=0,
        )
        await self.repo.add_truck(truck)
        await self.repo.commit()
        await self.repo.refresh(truck)

        logger.info("Truck %s registered as %s (%s t)", truck.plate, truck_type.value, truck.capacity_tons)
        return truck

    async def get_truck(self, truck_id: int) -> Truck:
        truck = await self.repo.get_truck(truck_id)
        if not truck:
            raise ResourceNotFoundError("Truck", truck_id)
        return truck

    async def list_trucks(self, query: Optional[TruckQuery] = None) -> Tuple[List[Truck], int]:
        return await self.repo.list_trucks(query or TruckQuery())

    async def update_details(self, truck_id: int, changes: Dict[str, Any]) -> Truck:
        """
        Update descriptive fields of a truck.

        The plate is immutable; a type change recomputes capacity.
        """
        if "plate" in changes:
            raise BusinessValidationError("Truck plate cannot be changed")
        unknown = set(changes) - set(DETAIL_FIELDS)
        if unknown:
            raise BusinessValidationError(
                "Unsupported truck fields", details={"fields": sorted(unknown)}
            )
        if "truck_type" in changes and changes["truck_type"] is None:
            raise BusinessValidationError("Truck type cannot be cleared", details={"field": "truck_type"})

        async with self.repo.truck_lock(truck_id):
            truck = await self.repo.get_truck(truck_id, for_update=True)
            if not truck:
                raise ResourceNotFoundError("Truck", truck_id)

            _check_registration_dates(
                changes.get("registration_date", truck.registration_date),
                changes.get("registration_expiry_date", truck.registration_expiry_date),
            )

            for field, value in changes.items():
                if field == "truck_type":
                    value = TruckType(value)
                    truck.capacity_tons = capacity_for_type(value)
                setattr(truck, field, value)

            await self.repo.commit()
        await self.repo.refresh(truck)
        return truck

    async def update_status(self, truck_id: int, changes: Dict[str, Any]) -> Truck:
        """
        Set one or more status axes; untouched axes keep their values.

        Raises:
            BusinessValidationError: If no axis (or an unknown field) is supplied
        """
        changes = {k: v for k, v in changes.items() if v is not None}
        if not changes:
            raise BusinessValidationError("At least one status field is required")
        unknown = set(changes) - set(STATUS_FIELDS)
        if unknown:
            raise BusinessValidationError(
                "Unsupported status fields", details={"fields": sorted(unknown)}
            )

        async with self.repo.truck_lock(truck_id):
            truck = await self.repo.get_truck(truck_id, for_update=True)
            if not truck:
                raise ResourceNotFoundError("Truck", truck_id)

            for field, value in changes.items():
                setattr(truck, field, STATUS_FIELDS[field](value))

            await self.repo.commit()
        await self.repo.refresh(truck)

        logger.info("Truck %s status now %s", truck.plate, truck.truck_status.value)
        return truck

    def registration_status(self, truck: Truck, today: Optional[date] = None) -> RegistrationInfo:
        state, days_remaining = registration_state(
            truck.registration_expiry_date,
            today or date.today(),
            settings.registration_warning_days,
        )
        return RegistrationInfo(truck=truck, state=state, days_remaining=days_remaining)

    async def list_expiring_registrations(
        self,
        days_ahead: Optional[int] = None,
        today: Optional[date] = None
    ) -> List[RegistrationInfo]:
        """Trucks whose registration has lapsed or lapses within `days_ahead` days."""
        today = today or date.today()
        if days_ahead is None:
            days_ahead = settings.registration_warning_days
        if days_ahead < 0:
            raise BusinessValidationError("days_ahead cannot be negative")

        trucks = await self.repo.list_trucks_expiring_before(today + timedelta(days=days_ahead))
        return [self.registration_status(truck, today) for truck in trucks]
