"""
Structured Logging Middleware

JSON log lines tagged with the request ID and, once the request gate has
admitted the caller, the tenant ID. One access line is written per request.
"""

import json
import logging
import time
import uuid
from collections.abc import Callable
from contextvars import ContextVar
from datetime import datetime, timezone

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

request_id_var: ContextVar[str] = ContextVar("request_id", default="")
tenant_id_var: ContextVar[int | None] = ContextVar("tenant_id", default=None)

EXTRA_FIELDS = ("user_id", "method", "path", "status_code", "duration_ms", "client_ip", "error_code")
QUIET_PATHS = frozenset({"/health", "/ready"})


def bind_tenant(tenant_id: int | None) -> None:
    """Tag log records emitted for the rest of this request with a tenant."""
    tenant_id_var.set(tenant_id)


class RequestContextFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get()
        if getattr(record, "tenant_id", None) is None:
            record.tenant_id = tenant_id_var.get()
        return True


class StructuredFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", ""),
        }
        tenant_id = getattr(record, "tenant_id", None)
        if tenant_id is not None:
            entry["tenant_id"] = tenant_id

        entry.update({key: getattr(record, key) for key in EXTRA_FIELDS if hasattr(record, key)})

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For") or request.headers.get("X-Real-IP")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


class StructuredLoggingMiddleware(BaseHTTPMiddleware):
    """
    Access logging keyed by request ID.

    An incoming X-Request-ID is reused, otherwise one is generated; either
    way it is echoed on the response. The gate dependency records the
    admitted tenant and user on request.state, which is read back here.
    """

    def __init__(self, app: ASGIApp, logger_name: str = "stagify.access"):
        super().__init__(app)
        self.logger = logging.getLogger(logger_name)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request_id_var.set(request_id)
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as exc:
            self._access_line(request, 500, started, error=str(exc))
            raise

        response.headers["X-Request-ID"] = request_id
        self._access_line(request, response.status_code, started)
        return response

    def _access_line(self, request: Request, status_code: int, started: float, error: str | None = None) -> None:
        if request.url.path in QUIET_PATHS:
            return

        duration_ms = round((time.perf_counter() - started) * 1000, 2)
        extra = {
            "method": request.method,
            "path": request.url.path,
            "status_code": status_code,
            "duration_ms": duration_ms,
            "client_ip": client_ip(request),
            "tenant_id": getattr(request.state, "tenant_id", None),
        }
        user_id = getattr(request.state, "user_id", None)
        if user_id is not None:
            extra["user_id"] = user_id

        if status_code >= 500:
            level = logging.ERROR
        elif status_code >= 400:
            level = logging.WARNING
        else:
            level = logging.INFO

        message = f"{request.method} {request.url.path} {status_code} {duration_ms}ms"
        if error:
            message = f"{message} ({error})"
        self.logger.log(level, message, extra=extra)


def setup_structured_logging(log_level: str = "INFO", json_format: bool = True, log_file: str | None = None) -> None:
    """
    Configure the root logger once at process start.

    Args:
        log_level: Level for the stagify loggers (DEBUG, INFO, WARNING, ERROR)
        json_format: JSON lines when True, plain text otherwise
        log_file: Write to this file instead of stderr
    """
    level = getattr(logging, log_level.upper())
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    handler = logging.FileHandler(log_file) if log_file else logging.StreamHandler()
    if json_format:
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s [%(request_id)s tenant=%(tenant_id)s] %(message)s")
        )
    handler.addFilter(RequestContextFilter())
    root_logger.addHandler(handler)

    for name in ("stagify", "stagify.access"):
        logging.getLogger(name).setLevel(level)
    # Third-party chatter stays at WARNING
    for name in ("uvicorn", "uvicorn.access", "sqlalchemy.engine", "httpx"):
        logging.getLogger(name).setLevel(logging.WARNING)
