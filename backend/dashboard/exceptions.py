"""
Error types raised by the services and the handlers that render them.

Every error response has the same envelope: {"error_code", "message", "details"}.
"""
import logging
from typing import Optional, Dict, Any

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AppException(Exception):
    """A failure the client can act on; carries its HTTP status and error code."""

    def __init__(
        self,
        error_code: str,
        message: str,
        status_code: int = status.HTTP_400_BAD_REQUEST,
        details: Optional[Dict[str, Any]] = None
    ):
        self.error_code = error_code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class ValidationError(AppException):
    """Input is well-formed but not acceptable (e.g. credential fields missing)."""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__("VALIDATION_ERROR", message, status.HTTP_400_BAD_REQUEST, details)


class NotFoundError(AppException):
    """A referenced project, feature, milestone, goal, output or task does not exist."""
    def __init__(self, resource: str, identifier: Optional[Any] = None):
        message = f"{resource} not found" if identifier is None else f"{resource} not found: {identifier}"
        super().__init__(
            "NOT_FOUND",
            message,
            status.HTTP_404_NOT_FOUND,
            {"resource": resource, "identifier": identifier},
        )


class BusinessLogicError(AppException):
    """The request conflicts with the current state, e.g. moving a completed task back."""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__("BUSINESS_LOGIC_ERROR", message, status.HTTP_422_UNPROCESSABLE_ENTITY, details)


def _envelope(status_code: int, error_code: str, message: Any, details: Any = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error_code": error_code, "message": message, "details": jsonable_encoder(details or {})},
    )


def _request_id(request: Request) -> Optional[str]:
    return getattr(request.state, "request_id", None)


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    logger.warning(
        f"{exc.error_code} on {request.method} {request.url.path}: {exc.message}",
        extra={"request_id": _request_id(request), "status": exc.status_code},
    )
    return _envelope(exc.status_code, exc.error_code, exc.message, exc.details)


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    logger.warning(
        f"HTTP {exc.status_code} on {request.method} {request.url.path}: {exc.detail}",
        extra={"request_id": _request_id(request), "status": exc.status_code},
    )
    return _envelope(exc.status_code, "HTTP_ERROR", exc.detail)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Pydantic body/query errors keep FastAPI's 422 but use the common envelope."""
    return _envelope(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "REQUEST_VALIDATION_ERROR",
        "Request validation failed",
        {"errors": exc.errors()},
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        f"Unexpected error on {request.method} {request.url.path}: {exc}",
        exc_info=True,
        extra={"request_id": _request_id(request)},
    )
    return _envelope(status.HTTP_500_INTERNAL_SERVER_ERROR, "INTERNAL_ERROR", "An unexpected error occurred")
