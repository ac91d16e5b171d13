"""
Client Truck Allocation database model.

Edge entity of the shared-fleet ledger: "this truck is offered to this
client for booking consideration".
"""

from sqlalchemy import Column, Integer, ForeignKey, DateTime, UniqueConstraint
from sqlalchemy.sql import func
from fleetdesk.app.db.session import Base


class ClientTruckAllocation(Base):
    """
    Allocation edge model.

    Many clients may hold an edge to the same truck. The unique constraint
    guarantees at most one edge per (client, truck) pair.
    """
    __tablename__ = "client_truck_allocations"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    client_id = Column(Integer, ForeignKey('clients.id'), nullable=False, index=True)
    truck_id = Column(Integer, ForeignKey('trucks.id'), nullable=False, index=True)

    # Who created the edge (admin user id from the access token)
    allocated_by = Column(Integer, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint('client_id', 'truck_id', name='uq_client_truck_allocation'),
    )

    def __repr__(self):
        return f"<ClientTruckAllocation(client_id={self.client_id}, truck_id={self.truck_id})>"
