"""
Allocation Pydantic schemas.

Batch results report per-truck failures instead of failing the request.
"""

from pydantic import BaseModel, Field
from typing import List
from fleetdesk.app.models.allocation_enums import AllocationFailure
from fleetdesk.app.models.truck_enums import TruckType


class AllocateTrucksRequest(BaseModel):
    """Allocate specific trucks to a client."""
    truck_ids: List[int] = Field(..., min_length=1, description="Trucks to allocate")


class AllocateByTypeRequest(BaseModel):
    """Allocate up to `quantity` trucks of a type not yet allocated to the client."""
    truck_type: TruckType
    quantity: int = Field(..., ge=1, le=500)


class FailedAllocationResponse(BaseModel):
    truck_id: int
    reason: AllocationFailure
    message: str


class AllocationResultResponse(BaseModel):
    successful: List[int]
    failed: List[FailedAllocationResponse]


class TypeAllocationResultResponse(BaseModel):
    truck_type: TruckType
    requested: int
    allocated: List[int]
    shortfall: int


class DeallocationResultResponse(BaseModel):
    count: int
    truck_ids: List[int]
