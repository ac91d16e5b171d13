"""
User roles enumeration.

Defines the role types carried in access tokens issued by the auth service.
"""

import enum


class UserRole(str, enum.Enum):
    """
    User role enumeration.

    Roles:
        ADMIN: Back-office staff managing trucks, allocations and bookings
        CLIENT: Client account booking deliveries on its allocated trucks
        DRIVER: Driver progressing delivery status
    """
    ADMIN = "ADMIN"
    CLIENT = "CLIENT"
    DRIVER = "DRIVER"
