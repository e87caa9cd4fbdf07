import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.errors import ErrorType, ERROR_NAME_MAP, ERROR_STATUS_MAP, STATUS_ERROR_MAP

logger = logging.getLogger(__name__)


class AppException(Exception):
    """Custom exception that routes raise for expected failures."""

    def __init__(self, error_type: ErrorType, message: str, errors: Optional[dict] = None):
        self.error_type = error_type
        self.message = message
        self.errors = errors
        super().__init__(message)

    @classmethod
    def from_error(cls, error) -> "AppException":
        return cls(error.error_type, error.message)


def new_error_id() -> str:
    return uuid.uuid4().hex[:8]


def error_body(
    request: Request,
    error_type: ErrorType,
    message: str,
    errors: Optional[dict] = None,
    error_id: Optional[str] = None,
) -> dict:
    """Build the error envelope shared by every failing REST response."""
    return {
        "errorId": error_id or new_error_id(),
        "message": message,
        "errorType": ERROR_NAME_MAP.get(error_type, "InternalError"),
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "path": request.url.path,
        "method": request.method,
        "errors": errors,
    }


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Global handler for AppException - converts to proper HTTP response."""
    status_code = ERROR_STATUS_MAP.get(exc.error_type, 500)
    logger.warning(f"{request.method} {request.url.path} -> {status_code}: {exc.message}")
    return JSONResponse(
        status_code=status_code,
        content=error_body(request, exc.error_type, exc.message, exc.errors),
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    error_type = STATUS_ERROR_MAP.get(exc.status_code, ErrorType.INTERNAL_ERROR)
    message = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(request, error_type, message),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Request validation errors become a 400 with messages grouped per field."""
    errors = {}
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path", "form")]
        field = ".".join(location) or "request"
        errors.setdefault(field, []).append(error.get("msg", "invalid value"))
    return JSONResponse(
        status_code=400,
        content=error_body(request, ErrorType.VALIDATION, "One or more validation errors occurred", errors),
    )


async def catch_unhandled_exceptions(request: Request, call_next):
    """HTTP middleware turning unexpected exceptions into a generic 500 envelope."""
    try:
        return await call_next(request)
    except Exception as e:
        error_id = new_error_id()
        logger.exception(f"Unhandled exception [{error_id}] on {request.method} {request.url.path}: {e}")
        return JSONResponse(
            status_code=500,
            content=error_body(
                request,
                ErrorType.INTERNAL_ERROR,
                "An unexpected error occurred. Please try again later",
                error_id=error_id,
            ),
        )


async def database_unavailable_handler(request: Request, exc: OperationalError) -> JSONResponse:
    """Database connectivity problems are reported as 503."""
    logger.error(f"Database connection error on {request.method} {request.url.path}: {str(exc)}")
    return JSONResponse(
        status_code=503,
        content=error_body(request, ErrorType.SERVICE_UNAVAILABLE, "Unable to connect to the database"),
    )
