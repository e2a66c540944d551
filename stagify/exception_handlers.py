"""
Global Exception Handlers for Stagify

Every error leaves the API in one envelope:

{
    "error": {
        "status_code": 429,
        "error_code": "QUOTA_EXCEEDED",
        "message": "Quota reached for 'staging' (10/10 this monthly period)",
        "type": "Too Many Requests",
        "details": {"resource_type": "staging", "used": 10, "limit": 10, "remaining": 0, "period": "monthly"},
        "path": "/api/v1/projects"
    }
}

`error_code` is the stable reason tag a client switches on to render
"sign in", "upgrade plan" or "quota reached" instead of a generic failure.
"""

import logging
from typing import Any, Union

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from stagify.exceptions import ErrorCode, StagifyError

logger = logging.getLogger(__name__)

ERROR_TYPES = {
    400: "Bad Request",
    401: "Unauthorized",
    403: "Forbidden",
    404: "Not Found",
    405: "Method Not Allowed",
    409: "Conflict",
    422: "Validation Error",
    429: "Too Many Requests",
    500: "Internal Server Error",
    502: "Bad Gateway",
    503: "Service Unavailable",
}

# Reason tags for errors raised by the framework rather than by Stagify code
HTTP_ERROR_CODES = {
    400: ErrorCode.VALIDATION_FAILED,
    401: ErrorCode.UNAUTHENTICATED,
    403: ErrorCode.INSUFFICIENT_ROLE,
    404: ErrorCode.RESOURCE_NOT_FOUND,
    409: ErrorCode.DUPLICATE_RESOURCE,
    422: ErrorCode.VALIDATION_FAILED,
    429: ErrorCode.QUOTA_EXCEEDED,
    500: ErrorCode.INTERNAL_ERROR,
    502: ErrorCode.UPSTREAM_GENERATION_FAILURE,
}

# Access rejections are routine traffic, not faults
ACCESS_REJECTIONS = frozenset(
    {
        ErrorCode.UNAUTHENTICATED,
        ErrorCode.NO_TENANT_CONTEXT,
        ErrorCode.INSUFFICIENT_ROLE,
        ErrorCode.PLAN_FEATURE_DENIED,
        ErrorCode.QUOTA_EXCEEDED,
    }
)


def create_error_response(
    status_code: int,
    message: str,
    error_code: str | ErrorCode | None = None,
    details: dict[str, Any] | None = None,
    path: str | None = None,
) -> JSONResponse:
    """Build the error envelope. Empty details and a missing path are omitted."""
    body: dict[str, Any] = {
        "status_code": status_code,
        "message": message,
        "type": get_error_type(status_code),
    }
    if error_code:
        body["error_code"] = ErrorCode(error_code).value
    if details:
        body["details"] = details
    if path:
        body["path"] = path
    return JSONResponse(status_code=status_code, content={"error": body})


def get_error_type(status_code: int) -> str:
    return ERROR_TYPES.get(status_code, "Error")


def get_http_error_code(status_code: int) -> str:
    return HTTP_ERROR_CODES.get(status_code, ErrorCode.UNKNOWN_ERROR).value


def _log_level(exc: StagifyError) -> int:
    if exc.status_code >= 500:
        return logging.ERROR
    if exc.error_code in ACCESS_REJECTIONS:
        return logging.INFO
    return logging.WARNING


async def stagify_exception_handler(request: Request, exc: StagifyError) -> JSONResponse:
    logger.log(
        _log_level(exc),
        "%s on %s: %s",
        exc.error_code.value,
        request.url.path,
        exc.message,
        extra={"status_code": exc.status_code, "error_code": exc.error_code.value, "path": request.url.path},
    )
    return create_error_response(exc.status_code, exc.message, exc.error_code, exc.details, request.url.path)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    error_code = get_http_error_code(exc.status_code)
    logger.warning(
        "HTTP %d on %s: %s",
        exc.status_code,
        request.url.path,
        exc.detail,
        extra={"status_code": exc.status_code, "error_code": error_code, "path": request.url.path},
    )
    return create_error_response(exc.status_code, str(exc.detail), error_code, path=request.url.path)


async def validation_exception_handler(
    request: Request, exc: Union[RequestValidationError, PydanticValidationError]
) -> JSONResponse:
    """Malformed request bodies, query strings and path parameters."""
    errors = [
        {
            "field": ".".join(str(loc) for loc in error["loc"] if loc != "body"),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]
    logger.warning("Validation failed on %s (%d errors)", request.url.path, len(errors))
    return create_error_response(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "Validation error",
        ErrorCode.VALIDATION_FAILED,
        {"validation_errors": errors},
        request.url.path,
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled %s on %s %s",
        type(exc).__name__,
        request.method,
        request.url.path,
        exc_info=exc,
    )
    return create_error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "An unexpected error occurred. Please try again later.",
        ErrorCode.INTERNAL_ERROR,
        path=request.url.path,
    )


def register_exception_handlers(app) -> None:
    app.add_exception_handler(StagifyError, stagify_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(PydanticValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
