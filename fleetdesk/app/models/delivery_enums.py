"""
Delivery-related enumerations.
"""

import enum


class DeliveryStatus(str, enum.Enum):
    """Delivery status enumeration."""
    PENDING = "pending"  # Booked, not yet picked up
    ACCEPTED = "accepted"  # Driver accepted the job
    IN_PROGRESS = "in-progress"  # Truck on the road
    DELIVERED = "delivered"  # Cargo dropped off
    AWAITING_CONFIRMATION = "awaiting-confirmation"  # Waiting for client sign-off
    COMPLETED = "completed"  # Terminal
    CANCELLED = "cancelled"  # Terminal


class BookingRejection(str, enum.Enum):
    """Reason codes returned when a truck cannot be booked."""
    TRUCK_NOT_FOUND = "TRUCK_NOT_FOUND"
    OPERATIONALLY_UNAVAILABLE = "OPERATIONALLY_UNAVAILABLE"
    REGISTRATION_EXPIRED = "REGISTRATION_EXPIRED"
    REGISTRATION_EXPIRING = "REGISTRATION_EXPIRING"
    SCHEDULE_CONFLICT = "SCHEDULE_CONFLICT"
