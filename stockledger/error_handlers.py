"""Custom error handlers and exceptions for the application."""
from fastapi import Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import SQLAlchemyError, IntegrityError
import traceback
from typing import Union

from .logging_config import get_logger

logger = get_logger("error_handlers")


class AppException(Exception):
    """Base exception for application-specific errors."""

    def __init__(self, message: str, status_code: int = 500, details: dict = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class ResourceNotFoundError(AppException):
    """Raised when a requested resource is not found."""

    def __init__(self, resource: str, identifier: Union[int, str]):
        super().__init__(
            message=f"{resource} with identifier '{identifier}' not found",
            status_code=404,
            details={"resource": resource, "identifier": str(identifier)}
        )


class DuplicateResourceError(AppException):
    """Raised when attempting to create a duplicate resource."""

    def __init__(self, resource: str, field: str, value: str):
        super().__init__(
            message=f"{resource} with {field} '{value}' already exists",
            status_code=409,
            details={"resource": resource, "field": field, "value": value}
        )


class ProductInUseError(AppException):
    """Raised when a catalog change would break ledger references to a product."""

    def __init__(self, product_id: int, references: int, action: str = "delete"):
        super().__init__(
            message=f"Cannot {action} product {product_id}: referenced by {references} transaction line(s)",
            status_code=409,
            details={"product_id": product_id, "references": references, "action": action}
        )


class LedgerImmutableError(AppException):
    """Raised when something tries to modify or remove an accepted ledger entry."""

    def __init__(self, entity: str, identifier: Union[int, str, None]):
        super().__init__(
            message=f"{entity} {identifier} is part of the ledger and cannot be modified",
            status_code=409,
            details={"entity": entity, "identifier": str(identifier)}
        )


class LedgerValidationError(AppException):
    """Base class for rejected transaction submissions. The ledger is left unchanged."""

    code = "ValidationError"

    def __init__(self, message: str, status_code: int = 422, details: dict = None):
        details = dict(details or {})
        details.setdefault("code", self.code)
        super().__init__(message=message, status_code=status_code, details=details)


class EmptyTransactionError(LedgerValidationError):
    """Raised when a transaction carries no lines."""

    code = "EmptyTransaction"

    def __init__(self):
        super().__init__("Transaction must contain at least one line")


class UnknownProductError(LedgerValidationError):
    """Raised when one or more lines reference a product that does not exist."""

    code = "UnknownProduct"

    def __init__(self, lines: list[dict]):
        self.lines = lines
        ids = ", ".join(str(item["product_id"]) for item in lines)
        super().__init__(
            f"Unknown product(s): {ids}",
            details={"lines": lines}
        )


class InvalidLineValueError(LedgerValidationError):
    """Raised when a line has a quantity or unit cost that is not positive or does not fit its column."""

    code = "InvalidLineValue"

    def __init__(self, lines: list[dict]):
        self.lines = lines
        super().__init__(
            "Invalid quantity or unit cost on one or more lines",
            details={"lines": lines}
        )


class InsufficientStockError(LedgerValidationError):
    """Raised when a transaction would drive a product's stock below zero."""

    code = "InsufficientStock"

    def __init__(self, shortages: list[dict]):
        self.shortages = shortages
        parts = ", ".join(
            f"product {item['product_id']} short by {item['shortfall']}" for item in shortages
        )
        super().__init__(
            f"Insufficient stock: {parts}",
            status_code=409,
            details={"shortages": shortages}
        )


async def app_exception_handler(request: Request, exc: AppException):
    """Handler for custom application exceptions."""
    log = logger.warning if exc.status_code < 500 else logger.error
    log(
        f"Application error: {exc.message}",
        extra={
            "status_code": exc.status_code,
            "path": request.url.path,
            "method": request.method,
            "details": exc.details
        }
    )

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.message,
            "details": exc.details,
            "path": request.url.path
        }
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handler for request validation errors."""
    errors = []
    for error in exc.errors():
        errors.append({
            "field": " -> ".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"]
        })

    logger.warning(
        f"Validation error on {request.method} {request.url.path}",
        extra={"validation_errors": errors}
    )

    return JSONResponse(
        status_code=422,
        content={
            "error": "Validation failed",
            "validation_errors": errors,
            "path": request.url.path
        }
    )


async def sqlalchemy_exception_handler(request: Request, exc: SQLAlchemyError):
    """Handler for SQLAlchemy database errors."""
    error_msg = "Database error occurred"

    if isinstance(exc, IntegrityError):
        error_msg = "Data integrity constraint violated"
        status_code = status.HTTP_409_CONFLICT
    else:
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    logger.error(
        f"Database error: {str(exc)}",
        extra={
            "path": request.url.path,
            "method": request.method,
            "exception_type": type(exc).__name__
        },
        exc_info=True
    )

    return JSONResponse(
        status_code=status_code,
        content={
            "error": error_msg,
            "detail": str(exc.orig) if hasattr(exc, 'orig') else str(exc),
            "path": request.url.path
        }
    )


async def generic_exception_handler(request: Request, exc: Exception):
    """Handler for unexpected exceptions."""
    logger.critical(
        f"Unhandled exception: {str(exc)}",
        extra={
            "path": request.url.path,
            "method": request.method,
            "exception_type": type(exc).__name__,
            "traceback": traceback.format_exc()
        },
        exc_info=True
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "Internal server error",
            "message": "An unexpected error occurred. Please contact support if the issue persists.",
            "path": request.url.path
        }
    )
