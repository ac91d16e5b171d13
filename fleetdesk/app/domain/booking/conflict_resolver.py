"""
Booking Conflict Resolver (Domain Logic).

Decides whether a truck can take a delivery in a date window.

Checks, in order (first failure wins):
1. Truck exists and is operational (not maintenance / out-of-service)
2. Registration does not lapse, or come within the warning window of
   lapsing, before the end of the delivery window
3. No non-cancelled delivery of the truck overlaps the window
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional

from fleetdesk.app.core.config import settings
from fleetdesk.app.domain.booking.windows import delivery_window
from fleetdesk.app.domain.registry.status_rules import NON_OPERATIONAL, registration_state
from fleetdesk.app.models.delivery_enums import BookingRejection
from fleetdesk.app.models.truck import Truck
from fleetdesk.app.models.truck_enums import OperationalStatus, RegistrationState
from fleetdesk.app.repositories.base import FleetRepository

logger = logging.getLogger("fleetdesk.booking")


@dataclass
class BookingDecision:
    truck_id: int
    start_date: date
    end_date: date
    bookable: bool
    reason: Optional[BookingRejection] = None
    message: Optional[str] = None
    truck: Optional[Truck] = None
    conflicting_delivery_ids: List[int] = field(default_factory=list)


class BookingConflictResolver:

    def __init__(self, repo: FleetRepository, warning_days: Optional[int] = None):
        self.repo = repo
        self.warning_days = settings.registration_warning_days if warning_days is None else warning_days

    async def can_book(self, truck_id: int, delivery_date: date, duration_days: int = 1) -> BookingDecision:
        """
        Evaluate a booking request without writing anything.

        Raises:
            BusinessValidationError: If the date is missing or the duration is invalid
        """
        start, end = delivery_window(delivery_date, duration_days)

        truck = await self.repo.get_truck(truck_id)
        if not truck:
            return BookingDecision(
                truck_id=truck_id,
                start_date=start,
                end_date=end,
                bookable=False,
                reason=BookingRejection.TRUCK_NOT_FOUND,
                message=f"Truck {truck_id} not found",
            )
        return await self.evaluate(truck, start, end)

    async def evaluate(self, truck: Truck, start: date, end: date) -> BookingDecision:
        """Run the checks against an already loaded truck."""
        decision = BookingDecision(truck_id=truck.id, start_date=start, end_date=end, bookable=False, truck=truck)

        # 1. Operational status
        operational = OperationalStatus(truck.operational_status)
        if operational in NON_OPERATIONAL:
            decision.reason = BookingRejection.OPERATIONALLY_UNAVAILABLE
            decision.message = f"Truck {truck.plate} is {operational.value}"
            return self._reject(decision)

        # 2. Registration window, judged at the last day of the delivery
        state, days_remaining = registration_state(truck.registration_expiry_date, end, self.warning_days)
        if state == RegistrationState.EXPIRED:
            decision.reason = BookingRejection.REGISTRATION_EXPIRED
            decision.message = (
                f"Truck {truck.plate} registration expires on {truck.registration_expiry_date}, "
                f"before the delivery ends on {end}"
            )
            return self._reject(decision)
        if state == RegistrationState.EXPIRING:
            decision.reason = BookingRejection.REGISTRATION_EXPIRING
            decision.message = (
                f"Truck {truck.plate} registration expires on {truck.registration_expiry_date}, "
                f"{days_remaining} day(s) after the delivery ends"
            )
            return self._reject(decision)

        # 3. Existing deliveries
        overlapping = await self.repo.find_overlapping_deliveries(truck.id, start, end)
        if overlapping:
            decision.reason = BookingRejection.SCHEDULE_CONFLICT
            decision.conflicting_delivery_ids = [d.id for d in overlapping]
            decision.message = f"Truck {truck.plate} is already booked between {start} and {end}"
            return self._reject(decision)

        decision.bookable = True
        return decision

    async def evaluate_fleet(self, trucks: List[Truck], start: date, end: date) -> List[BookingDecision]:
        """One decision per truck, in the order given."""
        return [await self.evaluate(truck, start, end) for truck in trucks]

    def _reject(self, decision: BookingDecision) -> BookingDecision:
        logger.info(
            "Truck %s not bookable %s..%s: %s",
            decision.truck_id, decision.start_date, decision.end_date, decision.reason.value
        )
        return decision
