"""
Custom exceptions and error handlers for consistent error responses.

Provides the ledger error taxonomy, standardized error codes and global
exception handlers.
"""

import logging
from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from typing import Any, Dict

logger = logging.getLogger("coldstore.errors")


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, error_code: str, status_code: int = 500, details: Dict[str, Any] = None):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class ValidationError(AppException):
    """Malformed or out-of-range input (e.g. quantity greater than remaining bags)."""

    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_VALIDATION_001",
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details
        )


class PreconditionError(AppException):
    """Action not permitted in the current state (e.g. season reset with stock left)."""

    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_PRECONDITION_001",
            status_code=status.HTTP_409_CONFLICT,
            details=details
        )


class MissingDataError(AppException):
    """A field required by the selected charge basis is absent."""

    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_MISSING_DATA_001",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            details=details
        )


class ConsistencyError(AppException):
    """
    A recomputation would violate a ledger invariant.

    Never auto-corrected: the transaction is aborted and the error is logged
    for manual reconciliation.
    """

    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_CONSISTENCY_001",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            details=details
        )
        logger.error("Ledger consistency failure: %s", message, extra={"details": self.details})


class NoOpWarning(UserWarning):
    """Idempotent re-application (e.g. reversing an already reversed record)."""


class InsufficientPermissionsError(AppException):
    """Raised when user doesn't have permission to perform an action."""

    def __init__(self, message: str = "Insufficient permissions", details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_PERM_001",
            status_code=status.HTTP_403_FORBIDDEN,
            details=details
        )


class ResourceNotFoundError(AppException):
    """Raised when requested resource is not found."""

    def __init__(self, resource: str, resource_id: Any = None):
        message = f"{resource} not found"
        if resource_id:
            message = f"{resource} with ID {resource_id} not found"
        super().__init__(
            message=message,
            error_code="ERR_NOT_FOUND_001",
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource": resource, "id": resource_id}
        )


class AuthenticationError(AppException):
    """Raised for authentication failures."""

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(
            message=message,
            error_code="ERR_AUTH_001",
            status_code=status.HTTP_401_UNAUTHORIZED
        )


# Global Exception Handlers

HTTP_ERROR_CODES = {
    400: "ERR_BAD_REQUEST",
    401: "ERR_UNAUTHORIZED",
    403: "ERR_FORBIDDEN",
    404: "ERR_NOT_FOUND",
    409: "ERR_CONFLICT",
    500: "ERR_INTERNAL_SERVER",
}


def error_body(request: Request, error_code: str, message: str, details: Dict[str, Any] = None) -> Dict[str, Any]:
    """Uniform error envelope; carries the request's correlation ID when one was assigned."""
    body = {"error_code": error_code, "message": message, "details": details or {}}
    correlation_id = getattr(request.state, "correlation_id", None)
    if correlation_id:
        body["correlation_id"] = correlation_id
    return body


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Ledger errors: 4xx are rejected operations, 5xx need manual attention."""
    if exc.status_code < 500:
        logger.info("%s %s rejected: %s (%s)", request.method, request.url.path, exc.message, exc.error_code)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(request, exc.error_code, exc.message, exc.details),
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(request, HTTP_ERROR_CODES.get(exc.status_code, "ERR_UNKNOWN"), exc.detail),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed request bodies, rejected before any ledger code runs."""
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=error_body(request, "ERR_VALIDATION", "Validation error", {"errors": jsonable_errors(exc)}),
    )


def jsonable_errors(exc: RequestValidationError) -> list:
    """Pydantic v2 error dicts may carry exception objects in 'ctx'."""
    errors = []
    for error in exc.errors():
        error = dict(error)
        if "ctx" in error:
            error["ctx"] = {k: str(v) for k, v in error["ctx"].items()}
        errors.append(error)
    return errors


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception on %s %s: %s", request.method, request.url.path, type(exc).__name__)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body(request, "ERR_INTERNAL_SERVER", "An internal server error occurred"),
    )
