"""
Truck database model.

Canonical truck record held by the Resource Registry.
"""

from sqlalchemy import Column, Integer, String, Float, Date, DateTime, Enum
from sqlalchemy.sql import func
from fleetdesk.app.db.session import Base
from fleetdesk.app.models.truck_enums import (
    TruckType,
    AllocationStatus,
    OperationalStatus,
    AvailabilityStatus,
)
from fleetdesk.app.domain.registry.status_rules import derive_legacy_status, status_summary


class Truck(Base):
    """
    Truck model.

    Status is stored as three orthogonal axes; the legacy single status is
    derived on read. Capacity always follows the truck type. Trucks are never
    hard-deleted.
    """
    __tablename__ = "trucks"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Identity (immutable once created)
    plate = Column(String(20), unique=True, nullable=False, index=True)

    # Classification
    truck_type = Column(Enum(TruckType), nullable=False, index=True)
    capacity_tons = Column(Float, nullable=False)
    brand = Column(String(100), nullable=True)
    model_year = Column(Integer, nullable=True)

    # Registration window
    registration_date = Column(Date, nullable=True)
    registration_expiry_date = Column(Date, nullable=False, index=True)

    # Status axes
    allocation_status = Column(Enum(AllocationStatus), default=AllocationStatus.AVAILABLE, nullable=False, index=True)
    operational_status = Column(Enum(OperationalStatus), default=OperationalStatus.ACTIVE, nullable=False, index=True)
    availability_status = Column(Enum(AvailabilityStatus), default=AvailabilityStatus.FREE, nullable=False, index=True)

    # Statistics
    total_deliveries = Column(Integer, default=0, nullable=False)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    @property
    def truck_status(self):
        """Legacy status, kept for older records and screens."""
        return derive_legacy_status(
            self.allocation_status,
            self.operational_status,
            self.availability_status
        )

    @property
    def status_summary(self) -> str:
        return status_summary(
            self.allocation_status,
            self.operational_status,
            self.availability_status
        )

    def __repr__(self):
        return f"<Truck(id={self.id}, plate='{self.plate}', type='{self.truck_type}')>"
