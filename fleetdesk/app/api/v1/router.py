"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from fleetdesk.app.api.v1.endpoints import trucks, clients, bookings, audit

router = APIRouter()

# Resource registry
router.include_router(trucks.router)

# Clients and the allocation ledger
router.include_router(clients.router)

# Availability checks, bookings and delivery lifecycle
router.include_router(bookings.router)

# Audit trail
router.include_router(audit.router)
