"""
Audit logging service for allocation, booking and truck status events.

Provides centralized logging for dispute handling and compliance.
"""

import logging
from typing import Optional, Dict, Any, List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc
from sqlalchemy.exc import SQLAlchemyError
from fleetdesk.app.core.exceptions import InfrastructureError
from fleetdesk.app.models.audit_log import AuditLog

logger = logging.getLogger("fleetdesk.audit")


class AuditAction:
    """Standardized audit action constants."""
    # Truck registry
    TRUCK_CREATED = "TRUCK_CREATED"
    TRUCK_UPDATED = "TRUCK_UPDATED"
    TRUCK_STATUS_CHANGED = "TRUCK_STATUS_CHANGED"

    # Allocation ledger
    TRUCK_ALLOCATED = "TRUCK_ALLOCATED"
    TRUCK_DEALLOCATED = "TRUCK_DEALLOCATED"

    # Clients
    CLIENT_CREATED = "CLIENT_CREATED"

    # Bookings
    DELIVERY_BOOKED = "DELIVERY_BOOKED"
    DELIVERY_STATUS_CHANGED = "DELIVERY_STATUS_CHANGED"


async def log_event(
    db: AsyncSession,
    action: str,
    actor_id: Optional[int] = None,
    actor_username: Optional[str] = None,
    entity_type: Optional[str] = None,
    entity_id: Optional[int] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> AuditLog:
    """
    Write one event to the audit log.

    Args:
        db: Database session
        action: Action being performed (use AuditAction constants)
        actor_id: ID of user performing the action
        actor_username: Username of actor
        entity_type: "truck", "client" or "delivery"
        entity_id: ID of the entity acted upon
        metadata: Additional context as JSON

    Returns:
        Created AuditLog instance
    """
    audit_log = AuditLog(
        actor_id=actor_id,
        actor_username=actor_username,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        meta_data=metadata,
    )

    try:
        db.add(audit_log)
        await db.commit()
        await db.refresh(audit_log)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("Failed to write audit event %s: %s", action, e)
        raise InfrastructureError(details={"operation": "log_event"}) from e

    return audit_log


async def log_actor_event(
    db: AsyncSession,
    current_user: dict,
    action: str,
    entity_type: str,
    entity_id: int,
    metadata: Optional[Dict[str, Any]] = None,
) -> AuditLog:
    """Log an event performed by the authenticated token holder."""
    return await log_event(
        db=db,
        action=action,
        actor_id=current_user.get("user_id"),
        actor_username=current_user.get("sub"),
        entity_type=entity_type,
        entity_id=entity_id,
        metadata=metadata,
    )


async def get_audit_trail(
    db: AsyncSession,
    entity_type: Optional[str] = None,
    entity_id: Optional[int] = None,
    action: Optional[str] = None,
    limit: int = 100
) -> List[AuditLog]:
    """
    Retrieve audit trail with optional filtering, most recent first.
    """
    query = select(AuditLog).order_by(desc(AuditLog.timestamp), desc(AuditLog.id))

    if entity_type:
        query = query.where(AuditLog.entity_type == entity_type)

    if entity_id is not None:
        query = query.where(AuditLog.entity_id == entity_id)

    if action:
        query = query.where(AuditLog.action == action)

    result = await db.execute(query.limit(limit))
    return result.scalars().all()
