"""
Truck Status Rules.

Pure functions shared by the registry, the booking resolver and the API:
- capacity is derived from the truck type, never entered by hand
- the legacy single-field status is derived from the three status axes
- registration standing follows the 30-day warning policy
"""

from datetime import date
from typing import Optional, Tuple

from fleetdesk.app.models.truck_enums import (
    TruckType,
    AllocationStatus,
    OperationalStatus,
    AvailabilityStatus,
    LegacyTruckStatus,
    RegistrationState,
)


# Tons per truck class
CAPACITY_BY_TYPE = {
    TruckType.MINI_TRUCK: 2.0,
    TruckType.FOUR_WHEELER: 3.0,
    TruckType.SIX_WHEELER: 4.0,
    TruckType.EIGHT_WHEELER: 6.0,
    TruckType.TEN_WHEELER: 10.0,
}

NON_OPERATIONAL = (OperationalStatus.MAINTENANCE, OperationalStatus.OUT_OF_SERVICE)


def capacity_for_type(truck_type) -> float:
    """
    Return the load capacity (tons) of a truck class.

    Raises:
        ValueError: If the type is not a known truck class
    """
    return CAPACITY_BY_TYPE[TruckType(truck_type)]


def derive_legacy_status(
    allocation_status,
    operational_status,
    availability_status
) -> LegacyTruckStatus:
    """
    Map the three status axes onto the legacy single status.

    Rules (first match wins):
    1. maintenance / out-of-service -> maintenance
    2. busy -> on-delivery
    3. scheduled -> scheduled
    4. allocated and active -> allocated
    5. otherwise -> available
    """
    allocation = AllocationStatus(allocation_status)
    operational = OperationalStatus(operational_status)
    availability = AvailabilityStatus(availability_status)

    if operational in NON_OPERATIONAL:
        return LegacyTruckStatus.MAINTENANCE
    if availability == AvailabilityStatus.BUSY:
        return LegacyTruckStatus.ON_DELIVERY
    if availability == AvailabilityStatus.SCHEDULED:
        return LegacyTruckStatus.SCHEDULED
    if allocation == AllocationStatus.ALLOCATED and operational == OperationalStatus.ACTIVE:
        return LegacyTruckStatus.ALLOCATED
    return LegacyTruckStatus.AVAILABLE


def status_summary(allocation_status, operational_status, availability_status) -> str:
    """Human-readable label for admin screens."""
    operational = OperationalStatus(operational_status)
    if operational == OperationalStatus.MAINTENANCE:
        return "Under Maintenance"
    if operational == OperationalStatus.OUT_OF_SERVICE:
        return "Out of Service"

    legacy = derive_legacy_status(allocation_status, operational_status, availability_status)
    if legacy == LegacyTruckStatus.ON_DELIVERY:
        return "On Delivery"
    if legacy == LegacyTruckStatus.SCHEDULED:
        return "Scheduled"
    if AllocationStatus(allocation_status) != AllocationStatus.AVAILABLE:
        return "Allocated to Client"
    return "Available for Allocation"


def registration_state(
    expiry_date: Optional[date],
    reference_date: date,
    warning_days: int
) -> Tuple[RegistrationState, Optional[int]]:
    """
    Classify registration standing on a given date.

    A missing expiry date is treated as expired: a truck without a known
    registration window may not be scheduled.

    Returns:
        (state, days_remaining) where days_remaining is None when unknown
    """
    if expiry_date is None:
        return RegistrationState.EXPIRED, None

    days_remaining = (expiry_date - reference_date).days
    if days_remaining < 0:
        return RegistrationState.EXPIRED, days_remaining
    if days_remaining <= warning_days:
        return RegistrationState.EXPIRING, days_remaining
    return RegistrationState.VALID, days_remaining
