"""
Booking API Endpoints.

Availability checks, delivery booking and the delivery status lifecycle.
Clients act only for their own client_id; drivers may only move the
status of deliveries assigned to them.
"""

from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, status, Query, Path
from sqlalchemy.ext.asyncio import AsyncSession
from fleetdesk.app.core.config import settings
from fleetdesk.app.core.dependencies import get_booking_service, get_conflict_resolver
from fleetdesk.app.core.exceptions import BusinessValidationError, InsufficientPermissionsError
from fleetdesk.app.core.guards import require_role, client_guard
from fleetdesk.app.db.session import get_db
from fleetdesk.app.domain.booking.booking_service import BookingService
from fleetdesk.app.domain.booking.conflict_resolver import BookingConflictResolver
from fleetdesk.app.models.delivery_enums import DeliveryStatus
from fleetdesk.app.models.enums import UserRole
from fleetdesk.app.repositories.base import DeliveryQuery
from fleetdesk.app.schemas.booking import (
    AvailabilityResponse,
    BookedDateResponse,
    DateAvailabilityResponse,
    DeliveryCreate,
    DeliveryListResponse,
    DeliveryResponse,
    DeliveryStatusUpdate,
    TruckBookedDatesResponse,
    UnavailableTruck,
)
from fleetdesk.app.schemas.truck import TruckResponse
from fleetdesk.app.services.audit import log_actor_event, AuditAction

router = APIRouter(prefix="/bookings", tags=["Bookings"])

BOOKING_ROLES = [UserRole.ADMIN, UserRole.CLIENT]


@router.get("/availability", response_model=AvailabilityResponse)
async def check_availability(
    truck_id: int = Query(..., ge=1),
    delivery_date: date = Query(...),
    duration_days: int = Query(1, ge=1, le=31),
    current_user: dict = Depends(require_role(BOOKING_ROLES)),
    resolver: BookingConflictResolver = Depends(get_conflict_resolver)
):
    """
    Can this truck be booked for the window?

    A negative answer is a 200 with a reason code, not an error.
    """
    decision = await resolver.can_book(truck_id, delivery_date, duration_days)
    return AvailabilityResponse(
        truck_id=decision.truck_id,
        start_date=decision.start_date,
        end_date=decision.end_date,
        bookable=decision.bookable,
        reason=decision.reason,
        message=decision.message,
        conflicting_delivery_ids=decision.conflicting_delivery_ids,
    )


@router.get("/available-trucks", response_model=DateAvailabilityResponse)
async def available_trucks_for_date(
    on_date: date = Query(..., alias="date"),
    client_id: Optional[int] = Query(None, ge=1, description="Required for admins"),
    current_user: dict = Depends(require_role(BOOKING_ROLES)),
    service: BookingService = Depends(get_booking_service)
):
    """
    The caller's allocated trucks that can still take a delivery on a day.

    Bookings made by other clients sharing a truck count against it.
    """
    own_client = client_guard.filter_by_client(current_user)
    if own_client is not None:
        client_id = client_id or own_client
    if client_id is None:
        raise BusinessValidationError("client_id is required")
    client_guard.enforce(client_id, current_user, "client")

    availability = await service.available_trucks_on(client_id, on_date)

    return DateAvailabilityResponse(
        on_date=availability.on_date,
        available_trucks=[TruckResponse.model_validate(t) for t in availability.available],
        booked_truck_ids=availability.booked_truck_ids,
        unavailable=[
            UnavailableTruck(truck_id=d.truck_id, reason=d.reason, message=d.message)
            for d in availability.unavailable
        ],
        total_allocated=len(availability.available) + len(availability.unavailable),
        total_available=len(availability.available),
    )


@router.get("/trucks/{truck_id}/booked-dates", response_model=TruckBookedDatesResponse)
async def booked_dates_for_truck(
    truck_id: int = Path(..., ge=1),
    date_from: Optional[date] = Query(None),
    current_user: dict = Depends(require_role(BOOKING_ROLES)),
    service: BookingService = Depends(get_booking_service)
):
    """
    Live bookings of a truck by every client, for a booking calendar.

    Clients only see trucks allocated to them (403 otherwise); each
    entry is flagged when it is the caller's own booking.
    """
    client_id = client_guard.filter_by_client(current_user)
    if current_user.get("role") == UserRole.CLIENT.value and client_id is None:
        raise InsufficientPermissionsError("Client token carries no client_id")

    booked = await service.booked_dates_for_truck(truck_id, client_id=client_id, date_from=date_from)
    return TruckBookedDatesResponse(
        truck_id=truck_id,
        booked_dates=[BookedDateResponse.model_validate(b) for b in booked],
        total=len(booked),
    )


@router.post("", response_model=DeliveryResponse, status_code=status.HTTP_201_CREATED)
async def book_delivery(
    booking: DeliveryCreate,
    current_user: dict = Depends(require_role(BOOKING_ROLES)),
    service: BookingService = Depends(get_booking_service),
    db: AsyncSession = Depends(get_db)
):
    """
    Book a delivery.

    Rejections come back as 409 with the reason in `details.reason`.
    """
    client_id = booking.client_id
    if current_user.get("role") == UserRole.CLIENT.value:
        client_id = client_id or current_user.get("client_id")
    if client_id is None:
        raise BusinessValidationError("client_id is required")
    client_guard.enforce(client_id, current_user, "client")

    delivery = await service.book_delivery(
        client_id=client_id,
        truck_id=booking.truck_id,
        driver_id=booking.driver_id,
        delivery_date=booking.delivery_date,
        duration_days=booking.duration_days,
        helper_id=booking.helper_id,
        pickup_location=booking.pickup_location,
        dropoff_location=booking.dropoff_location,
        cargo_weight_tons=booking.cargo_weight_tons,
    )

    await log_actor_event(
        db, current_user, AuditAction.DELIVERY_BOOKED, "delivery", delivery.id,
        metadata={
            "client_id": client_id,
            "truck_id": delivery.truck_id,
            "delivery_date": str(delivery.delivery_date),
            "duration_days": delivery.duration_days,
        }
    )

    return DeliveryResponse.model_validate(delivery)


@router.get("", response_model=DeliveryListResponse)
async def list_deliveries(
    client_id: Optional[int] = Query(None, ge=1),
    truck_id: Optional[int] = Query(None, ge=1),
    driver_id: Optional[int] = Query(None, ge=1),
    delivery_status: Optional[DeliveryStatus] = Query(None, alias="status"),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(settings.default_page_size, ge=1, le=100, description="Items per page"),
    current_user: dict = Depends(require_role(BOOKING_ROLES)),
    service: BookingService = Depends(get_booking_service)
):
    """List deliveries; clients only ever see their own."""
    own_client = client_guard.filter_by_client(current_user)
    if own_client is not None:
        if client_id is not None and client_id != own_client:
            client_guard.enforce(client_id, current_user, "client")
        client_id = own_client

    deliveries, total = await service.list_deliveries(DeliveryQuery(
        client_id=client_id,
        truck_id=truck_id,
        driver_id=driver_id,
        status=delivery_status,
        date_from=date_from,
        date_to=date_to,
        page=page,
        page_size=page_size,
    ))

    return DeliveryListResponse(
        deliveries=[DeliveryResponse.model_validate(d) for d in deliveries],
        total=total,
        page=page,
        page_size=page_size
    )


@router.get("/{delivery_id}", response_model=DeliveryResponse)
async def get_delivery(
    delivery_id: int = Path(..., ge=1),
    current_user: dict = Depends(require_role(BOOKING_ROLES)),
    service: BookingService = Depends(get_booking_service)
):
    delivery = await service.get_delivery(delivery_id)
    client_guard.enforce(delivery.client_id, current_user, "delivery")
    return DeliveryResponse.model_validate(delivery)


@router.patch("/{delivery_id}/status", response_model=DeliveryResponse)
async def update_delivery_status(
    update: DeliveryStatusUpdate,
    delivery_id: int = Path(..., ge=1),
    current_user: dict = Depends(require_role([UserRole.ADMIN, UserRole.DRIVER])),
    service: BookingService = Depends(get_booking_service),
    db: AsyncSession = Depends(get_db)
):
    """
    Move a delivery through its lifecycle.

    Illegal moves (including anything out of completed / cancelled) return 409.
    """
    if current_user.get("role") == UserRole.DRIVER.value:
        delivery = await service.get_delivery(delivery_id)
        if delivery.driver_id != current_user.get("user_id"):
            raise InsufficientPermissionsError(
                "Access denied. Delivery is assigned to another driver.",
                details={"delivery_id": delivery_id}
            )

    delivery, previous = await service.transition_delivery(delivery_id, update.status, update.reason)

    await log_actor_event(
        db, current_user, AuditAction.DELIVERY_STATUS_CHANGED, "delivery", delivery.id,
        metadata={"from": previous.value, "to": delivery.status.value, "reason": update.reason}
    )

    return DeliveryResponse.model_validate(delivery)
