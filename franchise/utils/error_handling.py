"""
Error Handling Module for the Regional Franchise Platform

This module provides centralized error handling with:
- Typed exception hierarchy (one class per failure kind)
- Standardized error responses
- Error logging
- Database error translation
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Union
from uuid import UUID
import logging

from fastapi import FastAPI, Request, HTTPException, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import (
    SQLAlchemyError,
    IntegrityError,
    OperationalError,
)
from starlette.exceptions import HTTPException as StarletteHTTPException

# Configure logging
logger = logging.getLogger("franchise.errors")


class ErrorCode(str, Enum):
    """Standardized error codes for the application"""

    # Validation Errors (422)
    VALIDATION_ERROR = "VALIDATION_ERROR"

    # Authentication Errors (401)
    UNAUTHORIZED = "UNAUTHORIZED"

    # Resource Errors (404/409)
    NOT_FOUND = "NOT_FOUND"
    CONSULTANT_NOT_FOUND = "CONSULTANT_NOT_FOUND"
    DUPLICATE_ENTRY = "DUPLICATE_ENTRY"

    # Governance / allocation / settlement rules (409)
    INVALID_STATE = "INVALID_STATE"
    OVER_CAPACITY = "OVER_CAPACITY"
    NO_ELIGIBLE_CONSULTANT = "NO_ELIGIBLE_CONSULTANT"
    ALREADY_PAID = "ALREADY_PAID"
    NOTHING_TO_SETTLE = "NOTHING_TO_SETTLE"

    # Storage / unexpected (500)
    INTERNAL = "INTERNAL"


class AppException(Exception):
    """Base exception for all application exceptions"""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[Dict[str, Any]] = None,
        field: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.field = field
        self.original_error = original_error
        self.timestamp = datetime.now(timezone.utc)
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for JSON response"""
        result = {
            "code": self.code.value,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.field:
            result["field"] = self.field
        if self.details:
            result["details"] = self.details
        return result


# ============================================================================
# Validation / Authentication
# ============================================================================

class ValidationException(AppException):
    """Input failed a domain validation rule"""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            code=ErrorCode.VALIDATION_ERROR,
            message=message,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            details=details,
            field=field,
        )


class AuthenticationException(AppException):
    """Caller identity missing"""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(
            code=ErrorCode.UNAUTHORIZED,
            message=message,
            status_code=status.HTTP_401_UNAUTHORIZED,
        )


# ============================================================================
# Resource Exceptions
# ============================================================================

class NotFoundException(AppException):
    """Resource not found"""

    def __init__(
        self,
        resource_type: str,
        resource_id: Optional[Union[str, UUID]] = None,
        message: Optional[str] = None,
        code: ErrorCode = ErrorCode.NOT_FOUND,
    ):
        if not message:
            message = f"{resource_type} not found"
            if resource_id:
                message = f"{resource_type} with ID '{resource_id}' not found"

        super().__init__(
            code=code,
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource_type": resource_type, "resource_id": str(resource_id) if resource_id else None},
        )


class ConsultantNotFoundException(NotFoundException):
    """Consultant not found"""

    def __init__(self, consultant_id: Union[str, UUID]):
        super().__init__(
            resource_type="Consultant",
            resource_id=consultant_id,
            code=ErrorCode.CONSULTANT_NOT_FOUND,
        )


class DuplicateEntryException(AppException):
    """Unique value already taken"""

    def __init__(self, resource_type: str, field: str, value: Any):
        super().__init__(
            code=ErrorCode.DUPLICATE_ENTRY,
            message=f"{resource_type} with {field} '{value}' already exists",
            status_code=status.HTTP_409_CONFLICT,
            field=field,
            details={"resource_type": resource_type, "value": str(value)},
        )


# ============================================================================
# Business Rule Exceptions
# ============================================================================

class BusinessRuleException(AppException):
    """A governance, allocation or settlement rule rejected the operation"""

    def __init__(
        self,
        message: str,
        code: ErrorCode,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=status.HTTP_409_CONFLICT,
            details=details,
        )


class InvalidStateException(BusinessRuleException):
    """Operation not legal from the entity's current state"""

    def __init__(self, entity: str, current_state: Any, operation: str):
        current = getattr(current_state, "value", current_state)
        super().__init__(
            message=f"Cannot {operation} {entity} in state {current}",
            code=ErrorCode.INVALID_STATE,
            details={"entity": entity, "current_state": current, "operation": operation},
        )


class OverCapacityException(BusinessRuleException):
    """Consultant has no free job slot"""

    def __init__(self, consultant_id: Union[str, UUID], current_jobs: int, max_jobs: int, requested: int = 1):
        super().__init__(
            message=f"Consultant {consultant_id} is at capacity ({current_jobs}/{max_jobs} jobs)",
            code=ErrorCode.OVER_CAPACITY,
            details={
                "consultant_id": str(consultant_id),
                "current_jobs": current_jobs,
                "max_jobs": max_jobs,
                "requested": requested,
            },
        )


class NoEligibleConsultantException(BusinessRuleException):
    """No consultant in the territory qualifies for the job"""

    def __init__(self, territory_id: Optional[Union[str, UUID]], reason: Optional[str] = None):
        super().__init__(
            message=reason or f"No eligible consultant in territory {territory_id}",
            code=ErrorCode.NO_ELIGIBLE_CONSULTANT,
            details={"territory_id": str(territory_id) if territory_id else None},
        )


class AlreadyPaidException(BusinessRuleException):
    """Settlement was already paid"""

    def __init__(self, settlement_id: Union[str, UUID]):
        super().__init__(
            message=f"Settlement {settlement_id} is already paid",
            code=ErrorCode.ALREADY_PAID,
            details={"settlement_id": str(settlement_id)},
        )


class NothingToSettleException(BusinessRuleException):
    """No pending, unsettled revenue up to the cutoff"""

    def __init__(self, licensee_id: Union[str, UUID], period_end: Any):
        super().__init__(
            message=f"No pending revenue to settle for licensee {licensee_id} up to {period_end}",
            code=ErrorCode.NOTHING_TO_SETTLE,
            details={"licensee_id": str(licensee_id), "period_end": str(period_end)},
        )


# ============================================================================
# Database Exceptions
# ============================================================================

class DatabaseException(AppException):
    """Storage or transaction failure"""

    def __init__(
        self,
        message: str = "A database error occurred",
        original_error: Optional[Exception] = None,
    ):
        super().__init__(
            code=ErrorCode.INTERNAL,
            message=message,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            original_error=original_error,
        )


# ============================================================================
# Exception Handlers
# ============================================================================

def create_error_response(
    code: ErrorCode,
    message: str,
    status_code: int,
    details: Optional[Dict[str, Any]] = None,
    field: Optional[str] = None,
) -> JSONResponse:
    """Create a standardized error response"""
    content = {
        "detail": {
            "code": code.value,
            "message": message,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
    }
    if field:
        content["detail"]["field"] = field
    if details:
        content["detail"]["details"] = details

    return JSONResponse(status_code=status_code, content=content)


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handle AppException"""
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        f"AppException: {exc.code.value} - {exc.message}",
        extra={
            "code": exc.code.value,
            "path": request.url.path,
            "method": request.method,
        },
        exc_info=exc.original_error,
    )

    return create_error_response(
        code=exc.code,
        message=exc.message,
        status_code=exc.status_code,
        details=exc.details,
        field=exc.field,
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle HTTPException"""
    code_map = {
        401: ErrorCode.UNAUTHORIZED,
        404: ErrorCode.NOT_FOUND,
        409: ErrorCode.INVALID_STATE,
        422: ErrorCode.VALIDATION_ERROR,
    }

    error_code = code_map.get(exc.status_code, ErrorCode.INTERNAL)
    message = exc.detail if isinstance(exc.detail, str) else str(exc.detail)

    logger.warning(
        f"HTTPException: {exc.status_code} - {message}",
        extra={"path": request.url.path, "method": request.method},
    )

    return create_error_response(
        code=error_code,
        message=message,
        status_code=exc.status_code,
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle Pydantic validation errors"""
    errors = []
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"])
        errors.append({
            "field": field,
            "message": error["msg"],
            "type": error["type"],
        })

    logger.warning(
        f"ValidationError: {len(errors)} validation errors",
        extra={"path": request.url.path, "method": request.method},
    )

    return create_error_response(
        code=ErrorCode.VALIDATION_ERROR,
        message="Request validation failed",
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        details={"errors": errors},
    )


async def sqlalchemy_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Handle SQLAlchemy errors"""
    error_message = "A database error occurred"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    if isinstance(exc, IntegrityError):
        error_message = "Data integrity constraint violated"
    elif isinstance(exc, OperationalError):
        error_message = "Database operation failed"

    logger.error(
        f"SQLAlchemyError: {type(exc).__name__} - {str(exc)}",
        extra={"path": request.url.path, "method": request.method},
        exc_info=True,
    )

    return create_error_response(
        code=ErrorCode.INTERNAL,
        message=error_message,
        status_code=status_code,
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unhandled exceptions"""
    logger.critical(
        f"UnhandledException: {type(exc).__name__} - {str(exc)}",
        extra={"path": request.url.path, "method": request.method},
        exc_info=True,
    )

    return create_error_response(
        code=ErrorCode.INTERNAL,
        message="An unexpected error occurred. Please try again later.",
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI application"""
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(SQLAlchemyError, sqlalchemy_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)


__all__ = [
    # Base
    "AppException",
    "ErrorCode",

    # Validation / auth
    "ValidationException",
    "AuthenticationException",

    # Resource
    "NotFoundException",
    "ConsultantNotFoundException",
    "DuplicateEntryException",

    # Business rules
    "BusinessRuleException",
    "InvalidStateException",
    "OverCapacityException",
    "NoEligibleConsultantException",
    "AlreadyPaidException",
    "NothingToSettleException",

    # Database
    "DatabaseException",

    # Handlers
    "setup_exception_handlers",
    "create_error_response",
]
