"""
Audit Log API Endpoints.

Read-only, admin-only view of allocation, booking and status events.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from fleetdesk.app.core.guards import require_admin
from fleetdesk.app.db.session import get_db
from fleetdesk.app.schemas.audit import AuditLogListResponse, AuditLogResponse
from fleetdesk.app.services.audit import get_audit_trail

router = APIRouter(prefix="/admin/audit-logs", tags=["Admin - Audit"])


@router.get("", response_model=AuditLogListResponse)
async def list_audit_logs(
    entity_type: Optional[str] = Query(None, description="truck, client or delivery"),
    entity_id: Optional[int] = Query(None, ge=1),
    action: Optional[str] = Query(None, description="Filter by action type"),
    limit: int = Query(100, ge=1, le=500, description="Max records to return"),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Audit trail, most recent first."""
    logs = await get_audit_trail(db, entity_type=entity_type, entity_id=entity_id, action=action, limit=limit)
    return AuditLogListResponse(
        logs=[AuditLogResponse.model_validate(log) for log in logs],
        total=len(logs)
    )
