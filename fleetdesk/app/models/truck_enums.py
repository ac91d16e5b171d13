"""
Truck-related enumerations.
"""

import enum


class TruckType(str, enum.Enum):
    """Truck body classes offered to clients."""
    MINI_TRUCK = "mini truck"
    FOUR_WHEELER = "4 wheeler"
    SIX_WHEELER = "6 wheeler"
    EIGHT_WHEELER = "8 wheeler"
    TEN_WHEELER = "10 wheeler"


class AllocationStatus(str, enum.Enum):
    """Whether the truck is currently tied to a client (admin-maintained)."""
    AVAILABLE = "available"
    ALLOCATED = "allocated"
    RESERVED = "reserved"


class OperationalStatus(str, enum.Enum):
    """Mechanical fitness of the truck."""
    ACTIVE = "active"
    MAINTENANCE = "maintenance"
    OUT_OF_SERVICE = "out-of-service"
    STANDBY = "standby"


class AvailabilityStatus(str, enum.Enum):
    """Short-term occupancy of the truck."""
    FREE = "free"
    BUSY = "busy"
    SCHEDULED = "scheduled"


class LegacyTruckStatus(str, enum.Enum):
    """Original single-field status, derived from the three axes above."""
    AVAILABLE = "available"
    ALLOCATED = "allocated"
    MAINTENANCE = "maintenance"
    SCHEDULED = "scheduled"
    ON_DELIVERY = "on-delivery"


class RegistrationState(str, enum.Enum):
    """Registration standing relative to a reference date."""
    VALID = "valid"
    EXPIRING = "expiring"
    EXPIRED = "expired"
