"""
Audit Log Database Model.

Tracks allocation, booking and status events for compliance and dispute handling.
"""

from sqlalchemy import Column, Integer, String, DateTime, JSON
from sqlalchemy.sql import func
from fleetdesk.app.db.session import Base


class AuditLog(Base):
    """
    Audit log model.

    Events logged:
    - TRUCK_CREATED / TRUCK_UPDATED / TRUCK_STATUS_CHANGED
    - TRUCK_ALLOCATED / TRUCK_DEALLOCATED
    - DELIVERY_BOOKED / DELIVERY_STATUS_CHANGED
    """
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Who performed the action (None for system actions)
    actor_id = Column(Integer, index=True, nullable=True)
    actor_username = Column(String(100), nullable=True)

    # What action was performed
    action = Column(String(100), nullable=False, index=True)

    # What it was performed on
    entity_type = Column(String(50), nullable=True, index=True)
    entity_id = Column(Integer, nullable=True, index=True)

    # Additional context (JSON for flexibility)
    meta_data = Column(JSON, nullable=True)

    # Timestamp
    timestamp = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    def __repr__(self):
        return f"<AuditLog(id={self.id}, action='{self.action}', entity={self.entity_type}:{self.entity_id})>"
