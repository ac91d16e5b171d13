"""
Custom exceptions and error handlers for consistent error responses.

Provides standardized error codes and global exception handlers.
Business conditions (already allocated, schedule conflict, registration
policy) are typed exceptions carrying a stable error code.
"""

import logging
from fastapi import HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from typing import Any, Dict

logger = logging.getLogger("fleetdesk.errors")


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, error_code: str, status_code: int = 500, details: Dict[str, Any] = None):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class InsufficientPermissionsError(AppException):
    """Raised when user doesn't have permission to perform an action."""

    def __init__(self, message: str = "Insufficient permissions", details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_PERM_001",
            status_code=status.HTTP_403_FORBIDDEN,
            details=details
        )


class AuthenticationError(AppException):
    """Raised for authentication failures."""

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(
            message=message,
            error_code="ERR_AUTH_001",
            status_code=status.HTTP_401_UNAUTHORIZED
        )


class ResourceNotFoundError(AppException):
    """Raised when requested resource is not found."""

    def __init__(self, resource: str, resource_id: Any = None):
        message = f"{resource} not found"
        if resource_id is not None:
            message = f"{resource} with ID {resource_id} not found"
        super().__init__(
            message=message,
            error_code="ERR_NOT_FOUND_001",
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource": resource, "id": resource_id}
        )


class AlreadyExistsError(AppException):
    """Raised when a unique business key is reused (e.g. truck plate)."""

    def __init__(self, resource: str, field: str, value: Any):
        super().__init__(
            message=f"{resource} with {field} '{value}' already exists",
            error_code="ERR_CONFLICT_001",
            status_code=status.HTTP_409_CONFLICT,
            details={"resource": resource, "field": field, "value": value}
        )


class AlreadyAllocatedError(AppException):
    """Raised when a (client, truck) allocation edge already exists."""

    def __init__(self, client_id: int, truck_id: int):
        super().__init__(
            message=f"Truck {truck_id} is already allocated to client {client_id}",
            error_code="ERR_ALLOC_001",
            status_code=status.HTTP_409_CONFLICT,
            details={"client_id": client_id, "truck_id": truck_id}
        )


class NotAllocatedError(AppException):
    """Raised when a (client, truck) allocation edge is expected but missing."""

    def __init__(self, client_id: int, truck_id: int):
        super().__init__(
            message=f"Truck {truck_id} is not allocated to client {client_id}",
            error_code="ERR_ALLOC_002",
            status_code=status.HTTP_409_CONFLICT,
            details={"client_id": client_id, "truck_id": truck_id}
        )


class BookingRejectedError(AppException):
    """Base class for booking policy rejections."""

    def __init__(self, message: str, error_code: str, reason: str, details: Dict[str, Any] = None):
        details = dict(details or {})
        details["reason"] = reason
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=status.HTTP_409_CONFLICT,
            details=details
        )
        self.reason = reason


class OperationallyUnavailableError(BookingRejectedError):
    """Raised when the truck is under maintenance or out of service."""

    def __init__(self, truck_id: int, operational_status: str):
        super().__init__(
            message=f"Truck {truck_id} is not operational ({operational_status})",
            error_code="ERR_BOOK_001",
            reason="OPERATIONALLY_UNAVAILABLE",
            details={"truck_id": truck_id, "operational_status": operational_status}
        )


class RegistrationExpiringError(BookingRejectedError):
    """Raised when registration expires within the warning window of the delivery."""

    def __init__(self, truck_id: int, expiry_date: Any):
        super().__init__(
            message=f"Truck {truck_id} registration expires on {expiry_date}, too close to the delivery window",
            error_code="ERR_BOOK_002",
            reason="REGISTRATION_EXPIRING",
            details={"truck_id": truck_id, "registration_expiry_date": str(expiry_date)}
        )


class RegistrationExpiredError(BookingRejectedError):
    """Raised when registration has lapsed before the end of the delivery window."""

    def __init__(self, truck_id: int, expiry_date: Any):
        super().__init__(
            message=f"Truck {truck_id} registration expired on {expiry_date}",
            error_code="ERR_BOOK_003",
            reason="REGISTRATION_EXPIRED",
            details={"truck_id": truck_id, "registration_expiry_date": str(expiry_date)}
        )


class ScheduleConflictError(BookingRejectedError):
    """Raised when the truck already has a delivery overlapping the window."""

    def __init__(self, truck_id: int, conflicting_delivery_ids: list):
        super().__init__(
            message=f"Truck {truck_id} already has a delivery in the requested window",
            error_code="ERR_BOOK_004",
            reason="SCHEDULE_CONFLICT",
            details={"truck_id": truck_id, "conflicting_delivery_ids": conflicting_delivery_ids}
        )


class InvalidStatusTransitionError(AppException):
    """Raised for a delivery status move the lifecycle does not allow."""

    def __init__(self, current: str, requested: str):
        super().__init__(
            message=f"Cannot move delivery from '{current}' to '{requested}'",
            error_code="ERR_STATE_001",
            status_code=status.HTTP_409_CONFLICT,
            details={"current_status": current, "requested_status": requested}
        )


class BusinessValidationError(AppException):
    """Raised for malformed business input (bad quantity, missing date, ...)."""

    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_VALIDATION_001",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            details=details
        )


class InfrastructureError(AppException):
    """Raised when storage or the lock backend fails. Safe to retry."""

    def __init__(self, message: str = "Storage backend unavailable", details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_INFRA_001",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            details=details
        )


# Global Exception Handlers

async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handler for custom application exceptions."""
    if isinstance(exc, InfrastructureError):
        logger.error("Infrastructure failure on %s: %s", request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": exc.error_code,
            "message": exc.message,
            "details": exc.details
        }
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handler for FastAPI HTTPException with standardized format."""
    # Map status code to error code
    error_code_map = {
        400: "ERR_BAD_REQUEST",
        401: "ERR_UNAUTHORIZED",
        403: "ERR_FORBIDDEN",
        404: "ERR_NOT_FOUND",
        409: "ERR_CONFLICT",
        500: "ERR_INTERNAL_SERVER"
    }

    error_code = error_code_map.get(exc.status_code, "ERR_UNKNOWN")

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": error_code,
            "message": exc.detail,
            "details": {}
        },
        headers=getattr(exc, "headers", None)
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handler for Pydantic validation errors."""
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error_code": "ERR_VALIDATION",
            "message": "Validation error",
            "details": {
                "errors": jsonable_encoder(exc.errors())
            }
        }
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handler for unhandled exceptions."""
    logger.exception("Unhandled exception: %s: %s", type(exc).__name__, exc)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error_code": "ERR_INTERNAL_SERVER",
            "message": "An internal server error occurred",
            "details": {}
        }
    )
