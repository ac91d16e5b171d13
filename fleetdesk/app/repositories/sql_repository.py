"""
SQLAlchemy implementation of the fleet repository.

Wraps an AsyncSession (PostgreSQL in production, SQLite in tests) and a
Redis client used for per-truck locks.
"""

import logging
from contextlib import asynccontextmanager
from datetime import date, timedelta
from functools import wraps
from typing import List, Optional, Tuple

from redis.exceptions import LockError, RedisError
from sqlalchemy import select, func, and_, or_, not_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from fleetdesk.app.core.config import settings
from fleetdesk.app.core.exceptions import AppException, AlreadyAllocatedError, InfrastructureError
from fleetdesk.app.domain.booking.windows import MAX_DURATION_DAYS
from fleetdesk.app.domain.registry.status_rules import NON_OPERATIONAL
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
from fleetdesk.app.repositories.base import FleetRepository, TruckQuery, DeliveryQuery

logger = logging.getLogger("fleetdesk.repository")

TRUCK_LOCK_PREFIX = "lock:truck:"


def storage_errors(func):
    """Translate SQLAlchemy failures into InfrastructureError."""
    @wraps(func)
    async def wrapper(self, *args, **kwargs):
        try:
            return await func(self, *args, **kwargs)
        except AppException:
            raise
        except SQLAlchemyError as e:
            logger.error("Storage failure in %s: %s", func.__name__, e)
            raise InfrastructureError(details={"operation": func.__name__}) from e
    return wrapper


def _legacy_status_clause(status: LegacyTruckStatus):
    """SQL condition equivalent to derive_legacy_status(...) == status."""
    operational_ok = not_(Truck.operational_status.in_(NON_OPERATIONAL))
    allocated = and_(
        Truck.allocation_status == AllocationStatus.ALLOCATED,
        Truck.operational_status == OperationalStatus.ACTIVE,
        Truck.availability_status == AvailabilityStatus.FREE,
    )

    if status == LegacyTruckStatus.MAINTENANCE:
        return Truck.operational_status.in_(NON_OPERATIONAL)
    if status == LegacyTruckStatus.ON_DELIVERY:
        return and_(operational_ok, Truck.availability_status == AvailabilityStatus.BUSY)
    if status == LegacyTruckStatus.SCHEDULED:
        return and_(operational_ok, Truck.availability_status == AvailabilityStatus.SCHEDULED)
    if status == LegacyTruckStatus.ALLOCATED:
        return allocated
    return and_(
        operational_ok,
        Truck.availability_status == AvailabilityStatus.FREE,
        not_(allocated),
    )


class SqlFleetRepository(FleetRepository):

    def __init__(self, db: AsyncSession, redis=None):
        self.db = db
        self.redis = redis

    # Units of work

    @asynccontextmanager
    async def truck_lock(self, truck_id: int):
        """
        Hold the Redis lock for one truck around a check-and-write.

        Without a Redis client the database row lock (get_truck with
        for_update=True) is the only serialization.
        """
        if self.redis is None:
            yield
            return

        lock = self.redis.lock(
            f"{TRUCK_LOCK_PREFIX}{truck_id}",
            timeout=settings.truck_lock_timeout_seconds,
            blocking_timeout=settings.truck_lock_wait_seconds,
        )
        try:
            acquired = await lock.acquire()
        except RedisError as e:
            logger.error("Lock backend failure for truck %s: %s", truck_id, e)
            raise InfrastructureError("Lock backend unavailable", details={"truck_id": truck_id}) from e

        if not acquired:
            raise InfrastructureError(
                f"Truck {truck_id} is being updated by another request, retry",
                details={"truck_id": truck_id}
            )

        try:
            yield
        finally:
            try:
                await lock.release()
            except LockError:
                logger.warning("Lock for truck %s expired before release", truck_id)

    @storage_errors
    async def commit(self) -> None:
        try:
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise

    @storage_errors
    async def rollback(self) -> None:
        await self.db.rollback()

    @storage_errors
    async def refresh(self, instance) -> None:
        await self.db.refresh(instance)

    # Trucks

    @storage_errors
    async def get_truck(self, truck_id: int, for_update: bool = False) -> Optional[Truck]:
        query = select(Truck).where(Truck.id == truck_id)
        if for_update:
            query = query.with_for_update()
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    @storage_errors
    async def get_truck_by_plate(self, plate: str) -> Optional[Truck]:
        result = await self.db.execute(select(Truck).where(Truck.plate == plate))
        return result.scalar_one_or_none()

    @storage_errors
    async def list_trucks(self, query: TruckQuery) -> Tuple[List[Truck], int]:
        conditions = []
        if query.truck_type:
            conditions.append(Truck.truck_type == query.truck_type)
        if query.allocation_status:
            conditions.append(Truck.allocation_status == query.allocation_status)
        if query.operational_status:
            conditions.append(Truck.operational_status == query.operational_status)
        if query.availability_status:
            conditions.append(Truck.availability_status == query.availability_status)
        if query.truck_status:
            conditions.append(_legacy_status_clause(query.truck_status))
        if query.search:
            pattern = f"%{query.search.strip()}%"
            conditions.append(or_(Truck.plate.ilike(pattern), Truck.brand.ilike(pattern)))

        count_query = select(func.count(Truck.id)).where(*conditions)
        total = (await self.db.execute(count_query)).scalar()

        page_query = (
            select(Truck)
            .where(*conditions)
            .order_by(Truck.id)
            .offset(query.offset)
            .limit(query.page_size)
        )
        result = await self.db.execute(page_query)
        return list(result.scalars().all()), total

    @storage_errors
    async def list_trucks_expiring_before(self, cutoff: date) -> List[Truck]:
        result = await self.db.execute(
            select(Truck)
            .where(Truck.registration_expiry_date <= cutoff)
            .order_by(Truck.registration_expiry_date, Truck.id)
        )
        return list(result.scalars().all())

    @storage_errors
    async def add_truck(self, truck: Truck) -> Truck:
        self.db.add(truck)
        await self.db.flush()
        return truck

    # Clients

    @storage_errors
    async def get_client(self, client_id: int) -> Optional[Client]:
        result = await self.db.execute(select(Client).where(Client.id == client_id))
        return result.scalar_one_or_none()

    @storage_errors
    async def list_clients(self, offset: int, limit: int) -> Tuple[List[Client], int]:
        total = (await self.db.execute(select(func.count(Client.id)))).scalar()
        result = await self.db.execute(
            select(Client).order_by(Client.id).offset(offset).limit(limit)
        )
        return list(result.scalars().all()), total

    @storage_errors
    async def add_client(self, client: Client) -> Client:
        self.db.add(client)
        await self.db.flush()
        return client

    # Allocation edges

    @storage_errors
    async def get_allocation(self, client_id: int, truck_id: int) -> Optional[ClientTruckAllocation]:
        result = await self.db.execute(
            select(ClientTruckAllocation).where(
                ClientTruckAllocation.client_id == client_id,
                ClientTruckAllocation.truck_id == truck_id
            )
        )
        return result.scalar_one_or_none()

    @storage_errors
    async def add_allocation(self, allocation: ClientTruckAllocation) -> ClientTruckAllocation:
        self.db.add(allocation)
        try:
            await self.db.flush()  # Will raise IntegrityError if unique constraint violated
        except IntegrityError:
            await self.db.rollback()
            raise AlreadyAllocatedError(allocation.client_id, allocation.truck_id)
        return allocation

    @storage_errors
    async def delete_allocation(self, allocation: ClientTruckAllocation) -> None:
        await self.db.delete(allocation)
        await self.db.flush()

    @storage_errors
    async def list_client_trucks(self, client_id: int, truck_type: Optional[TruckType] = None) -> List[Truck]:
        query = (
            select(Truck)
            .join(ClientTruckAllocation, ClientTruckAllocation.truck_id == Truck.id)
            .where(ClientTruckAllocation.client_id == client_id)
        )
        if truck_type:
            query = query.where(Truck.truck_type == truck_type)
        result = await self.db.execute(query.order_by(Truck.id))
        return list(result.scalars().all())

    @storage_errors
    async def list_trucks_not_allocated_to(
        self,
        client_id: int,
        truck_type: Optional[TruckType] = None
    ) -> List[Truck]:
        allocated_ids = select(ClientTruckAllocation.truck_id).where(
            ClientTruckAllocation.client_id == client_id
        )
        query = select(Truck).where(Truck.id.not_in(allocated_ids))
        if truck_type:
            query = query.where(Truck.truck_type == truck_type)
        result = await self.db.execute(query.order_by(Truck.id))
        return list(result.scalars().all())

    @storage_errors
    async def list_truck_clients(self, truck_id: int) -> List[Client]:
        result = await self.db.execute(
            select(Client)
            .join(ClientTruckAllocation, ClientTruckAllocation.client_id == Client.id)
            .where(ClientTruckAllocation.truck_id == truck_id)
            .order_by(Client.id)
        )
        return list(result.scalars().all())

    # Deliveries

    @storage_errors
    async def get_delivery(self, delivery_id: int, for_update: bool = False) -> Optional[Delivery]:
        query = select(Delivery).where(Delivery.id == delivery_id)
        if for_update:
            query = query.with_for_update()
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    @storage_errors
    async def list_deliveries(self, query: DeliveryQuery) -> Tuple[List[Delivery], int]:
        conditions = []
        if query.client_id is not None:
            conditions.append(Delivery.client_id == query.client_id)
        if query.truck_id is not None:
            conditions.append(Delivery.truck_id == query.truck_id)
        if query.driver_id is not None:
            conditions.append(Delivery.driver_id == query.driver_id)
        if query.status:
            conditions.append(Delivery.status == query.status)
        if query.date_from:
            conditions.append(Delivery.delivery_date >= query.date_from)
        if query.date_to:
            conditions.append(Delivery.delivery_date <= query.date_to)

        total = (await self.db.execute(select(func.count(Delivery.id)).where(*conditions))).scalar()
        result = await self.db.execute(
            select(Delivery)
            .where(*conditions)
            .order_by(Delivery.delivery_date.desc(), Delivery.id.desc())
            .offset(query.offset)
            .limit(query.page_size)
        )
        return list(result.scalars().all()), total

    @storage_errors
    async def find_overlapping_deliveries(self, truck_id: int, start: date, end: date) -> List[Delivery]:
        # Durations are capped, so anything starting earlier than this cannot reach `start`
        earliest_start = start - timedelta(days=MAX_DURATION_DAYS - 1)
        result = await self.db.execute(
            select(Delivery).where(
                Delivery.truck_id == truck_id,
                Delivery.status != DeliveryStatus.CANCELLED,
                Delivery.delivery_date >= earliest_start,
                Delivery.delivery_date <= end,
            ).order_by(Delivery.delivery_date, Delivery.id)
        )
        return [d for d in result.scalars().all() if d.end_date >= start]

    @storage_errors
    async def add_delivery(self, delivery: Delivery) -> Delivery:
        self.db.add(delivery)
        await self.db.flush()
        return delivery

    @storage_errors
    async def list_truck_bookings(self, truck_id: int, date_from: Optional[date] = None) -> List[Delivery]:
        conditions = [Delivery.truck_id == truck_id, Delivery.status != DeliveryStatus.CANCELLED]
        if date_from:
            conditions.append(Delivery.delivery_date >= date_from - timedelta(days=MAX_DURATION_DAYS - 1))
        result = await self.db.execute(
            select(Delivery).where(*conditions).order_by(Delivery.delivery_date, Delivery.id)
        )
        deliveries = list(result.scalars().all())
        if date_from:
            deliveries = [d for d in deliveries if d.end_date >= date_from]
        return deliveries
