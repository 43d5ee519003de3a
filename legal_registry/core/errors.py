"""
Standardized Error Handling for the Legal Records Registry.

Registry operations report failures as stable numeric codes. The HTTP
layer raises them as RegistryError and every error leaves the API with
the same JSON structure.
"""

import logging
import traceback
from enum import IntEnum
from typing import Any, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


# =============================================================================
# Error Codes
# =============================================================================

class RegistryErrorCode(IntEnum):
    """Closed set of registry failure kinds with their wire codes."""
    NOT_AUTHORIZED = 100
    INVALID_PROPERTY_ID = 101
    INVALID_DOC_TYPE = 102
    INVALID_HASH = 103
    INVALID_JURISDICTION = 104
    INVALID_STATUS = 105
    INVALID_TIMESTAMP = 106  # reserved
    RECORD_ALREADY_EXISTS = 107
    RECORD_NOT_FOUND = 108
    ORACLE_NOT_VERIFIED = 109
    INVALID_METADATA = 110
    INVALID_EXPIRY = 111
    RECORD_EXPIRED = 112
    INVALID_UPDATE = 113  # reserved
    MAX_RECORDS_EXCEEDED = 114
    INVALID_CURRENCY = 115
    INVALID_LOCATION = 116
    INVALID_OWNER = 117  # reserved
    INVALID_VERIFIER = 118  # reserved
    AUTHORITY_NOT_SET = 119
    INVALID_FEE = 120
    INSUFFICIENT_FEE = 121  # reserved
    TRANSFER_FAILED = 122
    INVALID_PARAM = 123
    AUTHORITY_ALREADY_SET = 124

    @property
    def slug(self) -> str:
        """snake_case identifier used in JSON error bodies."""
        return self.name.lower()


_CODE_MESSAGES: dict[RegistryErrorCode, str] = {
    RegistryErrorCode.NOT_AUTHORIZED: "Caller is not authorized for this operation",
    RegistryErrorCode.INVALID_PROPERTY_ID: "Property id must be a positive integer",
    RegistryErrorCode.INVALID_DOC_TYPE: "Document type must be 1-32 characters",
    RegistryErrorCode.INVALID_HASH: "Document hash must be exactly 64 characters",
    RegistryErrorCode.INVALID_JURISDICTION: "Jurisdiction must be exactly 3 characters",
    RegistryErrorCode.INVALID_STATUS: "Record status is not valid",
    RegistryErrorCode.INVALID_TIMESTAMP: "Invalid timestamp",
    RegistryErrorCode.RECORD_ALREADY_EXISTS: "A record already exists for this property and document type",
    RegistryErrorCode.RECORD_NOT_FOUND: "Record not found",
    RegistryErrorCode.ORACLE_NOT_VERIFIED: "Caller is not the registered oracle",
    RegistryErrorCode.INVALID_METADATA: "Metadata must be at most 256 characters",
    RegistryErrorCode.INVALID_EXPIRY: "Expiry must be later than the current block height",
    RegistryErrorCode.RECORD_EXPIRED: "Record has expired",
    RegistryErrorCode.INVALID_UPDATE: "Invalid update",
    RegistryErrorCode.MAX_RECORDS_EXCEEDED: "Registry capacity reached",
    RegistryErrorCode.INVALID_CURRENCY: "Currency must be one of USD, EUR, STX",
    RegistryErrorCode.INVALID_LOCATION: "Location must be at most 100 characters",
    RegistryErrorCode.INVALID_OWNER: "Invalid owner",
    RegistryErrorCode.INVALID_VERIFIER: "Invalid verifier",
    RegistryErrorCode.AUTHORITY_NOT_SET: "Authority contract has not been set",
    RegistryErrorCode.INVALID_FEE: "Registration fee must be positive",
    RegistryErrorCode.INSUFFICIENT_FEE: "Insufficient fee",
    RegistryErrorCode.TRANSFER_FAILED: "Registration fee transfer failed",
    RegistryErrorCode.INVALID_PARAM: "Invalid parameter",
    RegistryErrorCode.AUTHORITY_ALREADY_SET: "Authority contract is already set",
}

_CODE_STATUS: dict[RegistryErrorCode, int] = {
    RegistryErrorCode.NOT_AUTHORIZED: status.HTTP_403_FORBIDDEN,
    RegistryErrorCode.ORACLE_NOT_VERIFIED: status.HTTP_403_FORBIDDEN,
    RegistryErrorCode.RECORD_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    RegistryErrorCode.RECORD_ALREADY_EXISTS: status.HTTP_409_CONFLICT,
    RegistryErrorCode.AUTHORITY_ALREADY_SET: status.HTTP_409_CONFLICT,
    RegistryErrorCode.AUTHORITY_NOT_SET: status.HTTP_409_CONFLICT,
    RegistryErrorCode.MAX_RECORDS_EXCEEDED: status.HTTP_409_CONFLICT,
    RegistryErrorCode.RECORD_EXPIRED: status.HTTP_409_CONFLICT,
    RegistryErrorCode.TRANSFER_FAILED: status.HTTP_402_PAYMENT_REQUIRED,
}


def status_for_code(code: RegistryErrorCode, *, on_read: bool = False) -> int:
    """HTTP status for a registry error code.

    INVALID_STATUS is a validation error on writes but a state conflict
    when a stored record fails verification.
    """
    if code is RegistryErrorCode.INVALID_STATUS and on_read:
        return status.HTTP_409_CONFLICT
    return _CODE_STATUS.get(code, 422)


# =============================================================================
# Error Response Models
# =============================================================================

class ErrorDetail(BaseModel):
    """Detail for a single error."""
    loc: list[str] | None = None  # Location of error (field path)
    msg: str  # Error message
    type: str  # Error type identifier


class ErrorResponse(BaseModel):
    """Standard error response format."""
    error: str  # Error slug (e.g., "record_not_found")
    code: int | None = None  # Stable registry code, when one applies
    message: str  # Human-readable message
    details: list[ErrorDetail] | None = None
    request_id: str | None = None


# =============================================================================
# Custom Exceptions
# =============================================================================

class RegistryError(Exception):
    """Registry failure raised at the HTTP boundary."""

    def __init__(
        self,
        code: RegistryErrorCode,
        message: str | None = None,
        status_code: int | None = None,
        details: list[dict] | None = None,
    ):
        self.code = code
        self.error_code = code.slug
        self.message = message or _CODE_MESSAGES[code]
        self.status_code = status_code or status_for_code(code)
        self.details = details
        super().__init__(self.message)


class AuthenticationError(Exception):
    """Caller identity missing from the request."""

    def __init__(self, message: str = "Caller principal required"):
        self.message = message
        self.error_code = "authentication_required"
        self.status_code = status.HTTP_401_UNAUTHORIZED
        super().__init__(message)


# =============================================================================
# Exception Handlers
# =============================================================================

def get_request_id(request: Request) -> Optional[str]:
    """Extract request ID from request."""
    return request.headers.get("X-Request-Id")


async def registry_error_handler(request: Request, exc: RegistryError) -> JSONResponse:
    """Handle registry failures."""
    logger.warning(
        "RegistryError: %s (%d) - %s",
        exc.error_code,
        int(exc.code),
        exc.message,
        extra={"error_code": exc.error_code, "path": request.url.path},
    )

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.error_code,
            "code": int(exc.code),
            "message": exc.message,
            "details": exc.details,
            "request_id": get_request_id(request),
        },
    )


async def authentication_error_handler(request: Request, exc: AuthenticationError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.error_code,
            "code": None,
            "message": exc.message,
            "details": None,
            "request_id": get_request_id(request),
        },
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Handle standard HTTP exceptions."""
    error_codes = {
        400: "bad_request",
        401: "authentication_required",
        403: "permission_denied",
        404: "not_found",
        405: "method_not_allowed",
        409: "conflict",
        422: "validation_error",
        500: "internal_error",
        503: "service_unavailable",
    }

    error_code = error_codes.get(exc.status_code, "error")

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": error_code,
            "code": None,
            "message": str(exc.detail) if exc.detail else f"HTTP {exc.status_code}",
            "request_id": get_request_id(request),
        },
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle Pydantic validation errors."""
    details = []
    for error in exc.errors():
        details.append({
            "loc": [str(part) for part in error.get("loc", [])],
            "msg": error.get("msg", ""),
            "type": error.get("type", ""),
        })

    logger.info(
        "Validation error on %s: %d issues",
        request.url.path,
        len(details),
    )

    return JSONResponse(
        status_code=422,
        content={
            "error": "validation_error",
            "code": None,
            "message": "Request validation failed",
            "details": details,
            "request_id": get_request_id(request),
        },
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.error(
        "Unhandled exception on %s: %s",
        request.url.path,
        str(exc),
        exc_info=True,
        extra={
            "path": request.url.path,
            "method": request.method,
            "traceback": traceback.format_exc(),
        },
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_error",
            "code": None,
            "message": "An unexpected error occurred",
            "request_id": get_request_id(request),
        },
    )


# =============================================================================
# Setup Function
# =============================================================================

def setup_exception_handlers(app: FastAPI) -> None:
    """
    Register all exception handlers with the FastAPI app.

    Call during app initialization:
        setup_exception_handlers(app)
    """
    app.add_exception_handler(RegistryError, registry_error_handler)
    app.add_exception_handler(AuthenticationError, authentication_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)


__all__ = [
    "RegistryErrorCode",
    "RegistryError",
    "AuthenticationError",
    "ErrorResponse",
    "ErrorDetail",
    "status_for_code",
    "setup_exception_handlers",
]
