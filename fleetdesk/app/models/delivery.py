"""
Delivery database model.

A delivery is a booking tying one truck to a date window for a client.
"""

from datetime import timedelta
from sqlalchemy import Column, Integer, String, Float, Date, DateTime, ForeignKey, Enum, Index
from sqlalchemy.sql import func
from fleetdesk.app.db.session import Base
from fleetdesk.app.models.delivery_enums import DeliveryStatus


class Delivery(Base):
    """
    Delivery model.

    For a given truck, non-cancelled deliveries never overlap. The window
    covers delivery_date through delivery_date + duration_days - 1.
    """
    __tablename__ = "deliveries"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # References
    client_id = Column(Integer, ForeignKey('clients.id'), nullable=False, index=True)
    truck_id = Column(Integer, ForeignKey('trucks.id'), nullable=False, index=True)
    driver_id = Column(Integer, nullable=False, index=True)
    helper_id = Column(Integer, nullable=True)

    # Schedule
    delivery_date = Column(Date, nullable=False, index=True)
    duration_days = Column(Integer, default=1, nullable=False)

    # Cargo & route (informational)
    pickup_location = Column(String(500), nullable=True)
    dropoff_location = Column(String(500), nullable=True)
    cargo_weight_tons = Column(Float, nullable=True)

    # Status
    status = Column(Enum(DeliveryStatus), default=DeliveryStatus.PENDING, nullable=False, index=True)
    cancellation_reason = Column(String(500), nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index('ix_deliveries_truck_date', 'truck_id', 'delivery_date'),
    )

    @property
    def end_date(self):
        """Last calendar day the truck is committed to this delivery."""
        return self.delivery_date + timedelta(days=self.duration_days - 1)

    def __repr__(self):
        return f"<Delivery(id={self.id}, truck_id={self.truck_id}, date={self.delivery_date}, status='{self.status}')>"
