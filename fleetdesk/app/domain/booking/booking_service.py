"""
Booking Service (Domain Logic).

Creates deliveries and moves them through their lifecycle. Every booking
is a check-and-write under the truck's lock: the allocation edge, the
conflict resolver and the insert see one consistent state.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import List, Optional, Tuple

from fleetdesk.app.core.exceptions import (
    BookingRejectedError,
    BusinessValidationError,
    InsufficientPermissionsError,
    NotAllocatedError,
    OperationallyUnavailableError,
    RegistrationExpiredError,
    RegistrationExpiringError,
    ResourceNotFoundError,
    ScheduleConflictError,
)
from fleetdesk.app.domain.booking.conflict_resolver import BookingConflictResolver, BookingDecision
from fleetdesk.app.domain.booking.delivery_lifecycle import ensure_transition
from fleetdesk.app.domain.booking.windows import delivery_window
from fleetdesk.app.models.delivery import Delivery
from fleetdesk.app.models.delivery_enums import BookingRejection, DeliveryStatus
from fleetdesk.app.models.truck import Truck
from fleetdesk.app.repositories.base import FleetRepository, DeliveryQuery

logger = logging.getLogger("fleetdesk.booking")


@dataclass
class DateAvailability:
    """A client's allocated trucks split by whether they can take a delivery on one day."""
    on_date: date
    available: List[Truck] = field(default_factory=list)
    unavailable: List[BookingDecision] = field(default_factory=list)

    @property
    def booked_truck_ids(self) -> List[int]:
        return [d.truck_id for d in self.unavailable if d.reason == BookingRejection.SCHEDULE_CONFLICT]


@dataclass
class BookedDate:
    delivery_id: int
    client_id: int
    start_date: date
    end_date: date
    status: DeliveryStatus
    is_own_booking: bool


def rejection_error(decision: BookingDecision) -> BookingRejectedError:
    """Turn a negative decision into the matching typed exception."""
    truck = decision.truck
    if decision.reason == BookingRejection.OPERATIONALLY_UNAVAILABLE:
        return OperationallyUnavailableError(decision.truck_id, truck.operational_status.value)
    if decision.reason == BookingRejection.REGISTRATION_EXPIRED:
        return RegistrationExpiredError(decision.truck_id, truck.registration_expiry_date)
    if decision.reason == BookingRejection.REGISTRATION_EXPIRING:
        return RegistrationExpiringError(decision.truck_id, truck.registration_expiry_date)
    if decision.reason == BookingRejection.SCHEDULE_CONFLICT:
        return ScheduleConflictError(decision.truck_id, decision.conflicting_delivery_ids)
    raise ValueError(f"No booking error for reason {decision.reason}")


class BookingService:

    def __init__(self, repo: FleetRepository, resolver: Optional[BookingConflictResolver] = None):
        self.repo = repo
        self.resolver = resolver or BookingConflictResolver(repo)

    async def book_delivery(
        self,
        client_id: int,
        truck_id: int,
        driver_id: int,
        delivery_date: date,
        duration_days: int = 1,
        helper_id: Optional[int] = None,
        pickup_location: Optional[str] = None,
        dropoff_location: Optional[str] = None,
        cargo_weight_tons: Optional[float] = None,
    ) -> Delivery:
        """
        Book a delivery on an allocated truck.

        Flow:
        1. Validate window and client
        2. Lock the truck
        3. Require the (client, truck) allocation edge
        4. Run the conflict resolver
        5. Persist the PENDING delivery

        Truck status fields are not touched; date overlap is authoritative.
        """
        start, end = delivery_window(delivery_date, duration_days)

        client = await self.repo.get_client(client_id)
        if not client:
            raise ResourceNotFoundError("Client", client_id)
        if not client.is_active:
            raise BusinessValidationError(f"Client {client_id} is not active", details={"client_id": client_id})

        async with self.repo.truck_lock(truck_id):
            truck = await self.repo.get_truck(truck_id, for_update=True)
            if not truck:
                raise ResourceNotFoundError("Truck", truck_id)

            if not await self.repo.get_allocation(client_id, truck_id):
                raise NotAllocatedError(client_id, truck_id)

            if cargo_weight_tons is not None and cargo_weight_tons > truck.capacity_tons:
                raise BusinessValidationError(
                    f"Cargo of {cargo_weight_tons} t exceeds truck capacity of {truck.capacity_tons} t",
                    details={"cargo_weight_tons": cargo_weight_tons, "capacity_tons": truck.capacity_tons}
                )

            decision = await self.resolver.evaluate(truck, start, end)
            if not decision.bookable:
                raise rejection_error(decision)

            delivery = await self.repo.add_delivery(Delivery(
                client_id=client_id,
                truck_id=truck_id,
                driver_id=driver_id,
                helper_id=helper_id,
                delivery_date=start,
                duration_days=duration_days,
                pickup_location=pickup_location,
                dropoff_location=dropoff_location,
                cargo_weight_tons=cargo_weight_tons,
                status=DeliveryStatus.PENDING,
            ))
            await self.repo.commit()

        await self.repo.refresh(delivery)
        logger.info("Delivery %s booked: truck %s, client %s, %s..%s", delivery.id, truck_id, client_id, start, end)
        return delivery

    async def available_trucks_on(self, client_id: int, on_date: date) -> DateAvailability:
        """
        Which of the client's allocated trucks can take a delivery on this day.

        A truck is available when the conflict resolver accepts a one-day
        window; bookings by any client sharing the truck count.
        """
        start, end = delivery_window(on_date, 1)
        if not await self.repo.get_client(client_id):
            raise ResourceNotFoundError("Client", client_id)

        trucks = await self.repo.list_client_trucks(client_id)
        availability = DateAvailability(on_date=start)
        for decision in await self.resolver.evaluate_fleet(trucks, start, end):
            if decision.bookable:
                availability.available.append(decision.truck)
            else:
                availability.unavailable.append(decision)
        return availability

    async def booked_dates_for_truck(
        self,
        truck_id: int,
        client_id: Optional[int] = None,
        date_from: Optional[date] = None
    ) -> List[BookedDate]:
        """
        Every client's live bookings of a truck, for a booking calendar.

        With a client_id the truck must be allocated to that client, and
        each entry says whether the booking is the client's own.

        Raises:
            ResourceNotFoundError: If the truck does not exist
            InsufficientPermissionsError: If the truck is not allocated to the client
        """
        if not await self.repo.get_truck(truck_id):
            raise ResourceNotFoundError("Truck", truck_id)
        if client_id is not None and not await self.repo.get_allocation(client_id, truck_id):
            raise InsufficientPermissionsError(
                "Truck is not allocated to this client",
                details={"client_id": client_id, "truck_id": truck_id}
            )

        return [
            BookedDate(
                delivery_id=d.id,
                client_id=d.client_id,
                start_date=d.delivery_date,
                end_date=d.end_date,
                status=DeliveryStatus(d.status),
                is_own_booking=client_id is not None and d.client_id == client_id,
            )
            for d in await self.repo.list_truck_bookings(truck_id, date_from)
        ]

    async def get_delivery(self, delivery_id: int) -> Delivery:
        delivery = await self.repo.get_delivery(delivery_id)
        if not delivery:
            raise ResourceNotFoundError("Delivery", delivery_id)
        return delivery

    async def list_deliveries(self, query: Optional[DeliveryQuery] = None) -> Tuple[List[Delivery], int]:
        return await self.repo.list_deliveries(query or DeliveryQuery())

    async def transition_delivery(
        self,
        delivery_id: int,
        new_status: DeliveryStatus,
        reason: Optional[str] = None
    ) -> Tuple[Delivery, DeliveryStatus]:
        """
        Move a delivery to a new status.

        Completing counts the delivery on the truck; cancelling frees the
        window for new bookings.

        Returns:
            (delivery, previous_status)
        """
        delivery = await self.get_delivery(delivery_id)
        truck_id = delivery.truck_id

        async with self.repo.truck_lock(truck_id):
            delivery = await self.repo.get_delivery(delivery_id, for_update=True)
            previous = DeliveryStatus(delivery.status)
            new_status = ensure_transition(previous, new_status)
            now = datetime.now(timezone.utc)

            delivery.status = new_status
            if new_status == DeliveryStatus.COMPLETED:
                delivery.completed_at = now
                truck = await self.repo.get_truck(truck_id, for_update=True)
                if truck:
                    truck.total_deliveries = (truck.total_deliveries or 0) + 1
            elif new_status == DeliveryStatus.CANCELLED:
                delivery.cancelled_at = now
                delivery.cancellation_reason = reason

            await self.repo.commit()

        await self.repo.refresh(delivery)
        logger.info("Delivery %s: %s -> %s", delivery_id, previous.value, new_status.value)
        return delivery, previous
