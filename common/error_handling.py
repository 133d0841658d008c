"""
Domain exceptions and standardized error responses
"""
from typing import Optional
from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel
import logging
import traceback
import time

logger = logging.getLogger(__name__)

class ErrorDetail(BaseModel):
    """Detailed error information"""
    code: str
    message: str
    field: Optional[str] = None

class StandardErrorResponse(BaseModel):
    """Standard error response format"""
    success: bool = False
    message: str
    error: ErrorDetail
    timestamp: float
    trace_id: Optional[str] = None

class ErrorCodes:
    """Standard error codes"""
    # Authentication & Authorization
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    INVALID_TOKEN = "INVALID_TOKEN"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"

    # Validation
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_AMOUNT = "INVALID_AMOUNT"
    INVALID_RECIPIENT = "INVALID_RECIPIENT"

    # Business Logic
    INSUFFICIENT_FUNDS = "INSUFFICIENT_FUNDS"
    ACCOUNT_NOT_FOUND = "ACCOUNT_NOT_FOUND"
    ACCOUNT_EXISTS = "ACCOUNT_EXISTS"
    DUPLICATE_KEY = "DUPLICATE_KEY"

    # System Errors
    INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    DATABASE_ERROR = "DATABASE_ERROR"
    CIRCUIT_BREAKER_OPEN = "CIRCUIT_BREAKER_OPEN"

class FastPayError(Exception):
    """Base class for every error the ledger raises on purpose"""
    status_code = 500
    code = ErrorCodes.INTERNAL_SERVER_ERROR
    default_message = "Server error"

    def __init__(self, message: str = None, field: str = None):
        self.message = message or self.default_message
        self.field = field
        super().__init__(self.message)

# Validation
class ValidationError(FastPayError):
    status_code = 400
    code = ErrorCodes.VALIDATION_ERROR
    default_message = "Invalid request"

class InvalidAmount(ValidationError):
    code = ErrorCodes.INVALID_AMOUNT
    default_message = "Invalid amount"

class InvalidRecipient(ValidationError):
    code = ErrorCodes.INVALID_RECIPIENT
    default_message = "Cannot transfer to the same account"

class InsufficientBalance(ValidationError):
    code = ErrorCodes.INSUFFICIENT_FUNDS
    default_message = "Insufficient balance"

class PasswordTooLong(ValidationError):
    default_message = "Password must be at most 72 bytes"

# Conflicts
class ConflictError(FastPayError):
    status_code = 400
    code = ErrorCodes.DUPLICATE_KEY
    default_message = "Duplicate record"

class DuplicateKey(ConflictError):
    pass

class PaymentIdCollision(DuplicateKey):
    default_message = "Generated payment id already taken"

class AccountExists(ConflictError):
    code = ErrorCodes.ACCOUNT_EXISTS
    default_message = "User already exists"

# Lookups
class NotFoundError(FastPayError):
    status_code = 404
    code = ErrorCodes.ACCOUNT_NOT_FOUND
    default_message = "User not found"

class AccountNotFound(NotFoundError):
    pass

# Authentication
class AuthError(FastPayError):
    status_code = 401
    code = ErrorCodes.UNAUTHORIZED
    default_message = "Access denied"

class MissingToken(AuthError):
    pass

class InvalidToken(AuthError):
    status_code = 400
    code = ErrorCodes.INVALID_TOKEN
    default_message = "Invalid token"

class InvalidCredentials(AuthError):
    status_code = 400
    code = ErrorCodes.INVALID_CREDENTIALS
    default_message = "Invalid credentials"

class Forbidden(AuthError):
    status_code = 403
    code = ErrorCodes.FORBIDDEN
    default_message = "Token does not own this account"

# Store
class StoreError(FastPayError):
    status_code = 500
    code = ErrorCodes.DATABASE_ERROR
    default_message = "Store unavailable"

class StoreUnavailable(StoreError):
    pass

class CircuitOpen(StoreError):
    code = ErrorCodes.CIRCUIT_BREAKER_OPEN
    default_message = "Store circuit breaker is open"

def create_error_response(
    error_code: str,
    message: str,
    status_code: int = 500,
    field: str = None,
    trace_id: str = None,
) -> JSONResponse:
    """Create standardized error response"""
    error_response = StandardErrorResponse(
        message=message,
        error=ErrorDetail(code=error_code, message=message, field=field),
        timestamp=time.time(),
        trace_id=trace_id,
    )
    return JSONResponse(status_code=status_code, content=error_response.model_dump())

async def fastpay_exception_handler(request: Request, exc: FastPayError):
    """Handle domain exceptions"""
    trace_id = getattr(request.state, 'trace_id', None)

    log = logger.error if isinstance(exc, StoreError) else logger.warning
    log(f"{type(exc).__name__}: {exc.code} - {exc.message}", extra={
        "error_code": exc.code,
        "trace_id": trace_id,
        "path": request.url.path,
    })

    return create_error_response(
        error_code=exc.code,
        message=exc.message,
        status_code=exc.status_code,
        field=exc.field,
        trace_id=trace_id,
    )

async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle request body validation exceptions"""
    trace_id = getattr(request.state, 'trace_id', None)

    first_error = exc.errors()[0]
    field = ".".join(str(loc) for loc in first_error.get("loc", []) if loc != "body")
    message = first_error.get("msg", "Validation error")

    logger.warning(f"Validation error: {message} on field {field}", extra={"trace_id": trace_id})

    return create_error_response(
        error_code=ErrorCodes.VALIDATION_ERROR,
        message=f"Validation error on field '{field}': {message}",
        status_code=400,
        field=field,
        trace_id=trace_id,
    )

async def http_exception_handler(request: Request, exc: HTTPException):
    """Handle FastAPI HTTP exceptions"""
    trace_id = getattr(request.state, 'trace_id', None)

    status_to_code = {
        401: ErrorCodes.UNAUTHORIZED,
        403: ErrorCodes.FORBIDDEN,
        404: ErrorCodes.ACCOUNT_NOT_FOUND,
        503: ErrorCodes.SERVICE_UNAVAILABLE,
    }
    error_code = status_to_code.get(exc.status_code, ErrorCodes.INTERNAL_SERVER_ERROR)

    logger.warning(f"HTTP exception: {exc.status_code} - {exc.detail}", extra={"trace_id": trace_id})

    return create_error_response(
        error_code=error_code,
        message=str(exc.detail),
        status_code=exc.status_code,
        trace_id=trace_id,
    )

async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions"""
    trace_id = getattr(request.state, 'trace_id', None)

    logger.error(f"Unexpected error: {str(exc)}", extra={
        "trace_id": trace_id,
        "traceback": traceback.format_exc(),
    })

    # Don't expose internal error details
    return create_error_response(
        error_code=ErrorCodes.INTERNAL_SERVER_ERROR,
        message="Server error",
        status_code=500,
        trace_id=trace_id,
    )

def add_error_handlers(app):
    """Add all error handlers to FastAPI app"""
    app.add_exception_handler(FastPayError, fastpay_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)
