"""
Truck Pydantic schemas.

Defines request and response models for the truck registry.
"""

from pydantic import BaseModel, Field
from datetime import date, datetime
from typing import Optional, List
from fleetdesk.app.models.truck_enums import (
    TruckType,
    AllocationStatus,
    OperationalStatus,
    AvailabilityStatus,
    LegacyTruckStatus,
    RegistrationState,
)


class TruckCreate(BaseModel):
    """Schema for registering a new truck. Capacity is derived from the type."""
    plate: str = Field(..., min_length=1, max_length=20, description="Registration plate, unique")
    truck_type: TruckType
    brand: Optional[str] = Field(None, max_length=100)
    model_year: Optional[int] = Field(None, ge=1950, le=2100)
    registration_date: Optional[date] = None
    registration_expiry_date: date


class TruckUpdate(BaseModel):
    """Schema for updating truck details. The plate cannot be changed."""
    truck_type: Optional[TruckType] = None
    brand: Optional[str] = Field(None, max_length=100)
    model_year: Optional[int] = Field(None, ge=1950, le=2100)
    registration_date: Optional[date] = None
    registration_expiry_date: Optional[date] = None


class TruckStatusUpdate(BaseModel):
    """Partial status update; omitted axes keep their current value."""
    allocation_status: Optional[AllocationStatus] = None
    operational_status: Optional[OperationalStatus] = None
    availability_status: Optional[AvailabilityStatus] = None


class TruckResponse(BaseModel):
    """Schema for truck response, including the derived legacy status."""
    id: int
    plate: str
    truck_type: TruckType
    capacity_tons: float
    brand: Optional[str]
    model_year: Optional[int]
    registration_date: Optional[date]
    registration_expiry_date: date
    allocation_status: AllocationStatus
    operational_status: OperationalStatus
    availability_status: AvailabilityStatus
    truck_status: LegacyTruckStatus
    status_summary: str
    total_deliveries: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class TruckListResponse(BaseModel):
    """Schema for paginated truck list."""
    trucks: List[TruckResponse]
    total: int
    page: int
    page_size: int


class RegistrationStatusResponse(BaseModel):
    truck_id: int
    plate: str
    registration_expiry_date: Optional[date]
    state: RegistrationState
    days_remaining: Optional[int]
