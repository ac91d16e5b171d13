"""
Security guards for role-based and client-scoped access control.
"""

from typing import List, Optional
from fastapi import Depends
from fleetdesk.app.core.exceptions import InsufficientPermissionsError
from fleetdesk.app.models.enums import UserRole
from fleetdesk.app.core.dependencies import get_current_user


def require_role(allowed_roles: List[UserRole]):
    """
    Dependency factory for role-based access control.

    Usage:
        @router.get("/admin/trucks")
        async def list_trucks(current_user: dict = Depends(require_role([UserRole.ADMIN]))):
            ...

    Raises:
        InsufficientPermissionsError 403 if user role is not in allowed_roles
    """
    async def role_checker(current_user: dict = Depends(get_current_user)) -> dict:
        try:
            user_role = UserRole(current_user.get("role"))
        except ValueError:
            raise InsufficientPermissionsError("Invalid role in token")

        if user_role not in allowed_roles:
            raise InsufficientPermissionsError(
                f"Access denied. Required role: {', '.join([r.value for r in allowed_roles])}",
                details={"role": user_role.value}
            )

        return current_user

    return role_checker


require_admin = require_role([UserRole.ADMIN])


def verify_client_access(client_id: int, current_user: dict) -> bool:
    """
    Admins may act for any client; a client token only for its own client_id.
    Drivers never act for clients.
    """
    user_role = current_user.get("role")

    if user_role == UserRole.ADMIN.value:
        return True

    if user_role == UserRole.CLIENT.value:
        return current_user.get("client_id") == client_id

    return False


class ClientAccessGuard:
    """
    Enforces client scoping on booking endpoints.

    Usage:
        client_guard.enforce(delivery.client_id, current_user, "delivery")
    """

    def enforce(self, client_id: int, current_user: dict, resource_name: str = "resource"):
        if not verify_client_access(client_id, current_user):
            raise InsufficientPermissionsError(
                f"Access denied. You do not have permission to access this {resource_name}.",
                details={"client_id": client_id}
            )

    def filter_by_client(self, current_user: dict) -> Optional[int]:
        """
        Client id to scope list queries by; None for admins and drivers.
        """
        if current_user.get("role") == UserRole.CLIENT.value:
            return current_user.get("client_id")
        return None


client_guard = ClientAccessGuard()
