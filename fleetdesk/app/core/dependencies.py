"""
Authentication and service dependencies for FastAPI.

Tokens are issued upstream; this module validates them and wires the
repository and domain services per request.
"""

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from fleetdesk.app.core.exceptions import AuthenticationError
from fleetdesk.app.core.jwt import decode_access_token
from fleetdesk.app.core.redis_client import get_redis
from fleetdesk.app.db.session import get_db
from fleetdesk.app.domain.allocation.allocation_ledger import AllocationLedger
from fleetdesk.app.domain.booking.booking_service import BookingService
from fleetdesk.app.domain.booking.conflict_resolver import BookingConflictResolver
from fleetdesk.app.domain.registry.registry_service import TruckRegistry
from fleetdesk.app.repositories.base import FleetRepository
from fleetdesk.app.repositories.sql_repository import SqlFleetRepository

# HTTP Bearer security scheme
security = HTTPBearer()


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> dict:
    """
    FastAPI dependency for JWT authentication.

    Returns:
        Decoded token payload (sub, user_id, role, and client_id for clients)

    Raises:
        AuthenticationError: 401 if the token is invalid or incomplete
    """
    payload = decode_access_token(credentials.credentials)
    if payload is None:
        raise AuthenticationError("Could not validate credentials")

    if not payload.get("user_id") or not payload.get("role"):
        raise AuthenticationError("Invalid token payload")

    return payload


async def get_fleet_repository(
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis),
) -> FleetRepository:
    return SqlFleetRepository(db, redis)


async def get_truck_registry(repo: FleetRepository = Depends(get_fleet_repository)) -> TruckRegistry:
    return TruckRegistry(repo)


async def get_allocation_ledger(repo: FleetRepository = Depends(get_fleet_repository)) -> AllocationLedger:
    return AllocationLedger(repo)


async def get_conflict_resolver(repo: FleetRepository = Depends(get_fleet_repository)) -> BookingConflictResolver:
    return BookingConflictResolver(repo)


async def get_booking_service(repo: FleetRepository = Depends(get_fleet_repository)) -> BookingService:
    return BookingService(repo)
