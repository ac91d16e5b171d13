"""
Booking Pydantic schemas.

Defines request and response models for deliveries and availability checks.
"""

from pydantic import BaseModel, Field
from datetime import date, datetime
from typing import Optional, List
from fleetdesk.app.models.delivery_enums import BookingRejection, DeliveryStatus
from fleetdesk.app.schemas.truck import TruckResponse


class DeliveryCreate(BaseModel):
    """Schema for booking a delivery on an allocated truck."""
    client_id: Optional[int] = Field(None, description="Required for admins; taken from the token for clients")
    truck_id: int
    driver_id: int
    helper_id: Optional[int] = None
    delivery_date: date
    duration_days: int = Field(1, ge=1, le=31, description="Days the truck is occupied")
    pickup_location: Optional[str] = Field(None, max_length=500)
    dropoff_location: Optional[str] = Field(None, max_length=500)
    cargo_weight_tons: Optional[float] = Field(None, gt=0)


class DeliveryStatusUpdate(BaseModel):
    status: DeliveryStatus
    reason: Optional[str] = Field(None, max_length=500, description="Cancellation reason")


class DeliveryResponse(BaseModel):
    id: int
    client_id: int
    truck_id: int
    driver_id: int
    helper_id: Optional[int]
    delivery_date: date
    duration_days: int
    end_date: date
    pickup_location: Optional[str]
    dropoff_location: Optional[str]
    cargo_weight_tons: Optional[float]
    status: DeliveryStatus
    cancellation_reason: Optional[str]
    created_at: datetime
    updated_at: datetime
    completed_at: Optional[datetime]
    cancelled_at: Optional[datetime]

    class Config:
        from_attributes = True


class DeliveryListResponse(BaseModel):
    deliveries: List[DeliveryResponse]
    total: int
    page: int
    page_size: int


class AvailabilityResponse(BaseModel):
    """Result of a can-book check; a negative answer is not an error."""
    truck_id: int
    start_date: date
    end_date: date
    bookable: bool
    reason: Optional[BookingRejection] = None
    message: Optional[str] = None
    conflicting_delivery_ids: List[int] = []


class UnavailableTruck(BaseModel):
    truck_id: int
    reason: BookingRejection
    message: Optional[str] = None


class DateAvailabilityResponse(BaseModel):
    """The caller's allocated trucks for one day."""
    on_date: date
    available_trucks: List[TruckResponse]
    booked_truck_ids: List[int]
    unavailable: List[UnavailableTruck]
    total_allocated: int
    total_available: int


class BookedDateResponse(BaseModel):
    delivery_id: int
    client_id: int
    start_date: date
    end_date: date
    status: DeliveryStatus
    is_own_booking: bool

    class Config:
        from_attributes = True


class TruckBookedDatesResponse(BaseModel):
    truck_id: int
    booked_dates: List[BookedDateResponse]
    total: int
