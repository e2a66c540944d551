"""
Tests for structured logging and error response rendering.
"""

import json
import logging

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from starlette.requests import Request

from stagify.exception_handlers import create_error_response, get_http_error_code, register_exception_handlers
from stagify.exceptions import ErrorCode, QuotaExceededError
from stagify.middleware.logging import (
    RequestContextFilter,
    StructuredFormatter,
    StructuredLoggingMiddleware,
    client_ip,
    request_id_var,
    tenant_id_var,
)


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("stagify.test", logging.INFO, __file__, 1, "hello %s", ("world",), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestStructuredFormatter:
    def test_formats_json_with_extras(self):
        line = StructuredFormatter().format(_record(request_id="abc", tenant_id=3, error_code="QUOTA_EXCEEDED"))
        data = json.loads(line)

        assert data["message"] == "hello world"
        assert data["level"] == "INFO"
        assert data["request_id"] == "abc"
        assert data["tenant_id"] == 3
        assert data["error_code"] == "QUOTA_EXCEEDED"

    def test_unknown_extras_are_ignored(self):
        data = json.loads(StructuredFormatter().format(_record(password="secret")))
        assert "password" not in data

    def test_request_context_filter(self):
        request_token = request_id_var.set("req-9")
        tenant_token = tenant_id_var.set(4)
        try:
            record = _record()
            assert RequestContextFilter().filter(record) is True
            assert record.request_id == "req-9"
            assert record.tenant_id == 4
        finally:
            request_id_var.reset(request_token)
            tenant_id_var.reset(tenant_token)

    def test_explicit_tenant_wins_over_context(self):
        token = tenant_id_var.set(4)
        try:
            record = _record(tenant_id=9)
            RequestContextFilter().filter(record)
            assert record.tenant_id == 9
        finally:
            tenant_id_var.reset(token)

    def test_client_ip_prefers_forwarded_header(self):
        request = Request(
            {
                "type": "http",
                "method": "GET",
                "path": "/",
                "headers": [(b"x-forwarded-for", b"203.0.113.7, 10.0.0.1")],
                "client": ("10.0.0.1", 1234),
            }
        )
        assert client_ip(request) == "203.0.113.7"


class TestErrorResponses:
    def test_create_error_response(self):
        response = create_error_response(404, "Not here", ErrorCode.RESOURCE_NOT_FOUND, path="/x")
        body = json.loads(response.body)

        assert body["error"]["type"] == "Not Found"
        assert body["error"]["error_code"] == "RESOURCE_NOT_FOUND"
        assert "details" not in body["error"]

    @pytest.mark.parametrize(
        "status_code, code",
        [(401, ErrorCode.UNAUTHENTICATED), (404, ErrorCode.RESOURCE_NOT_FOUND), (500, ErrorCode.INTERNAL_ERROR)],
    )
    def test_http_error_codes(self, status_code, code):
        assert get_http_error_code(status_code) == code


@pytest.fixture
def small_app():
    app = FastAPI()
    app.add_middleware(StructuredLoggingMiddleware)
    register_exception_handlers(app)

    @app.get("/quota")
    async def quota():
        raise QuotaExceededError("staging", 10, 10, "monthly")

    @app.get("/ok")
    async def ok():
        return {"ok": True}

    return app


class TestMiddlewareIntegration:
    @pytest.mark.asyncio
    async def test_generates_request_id(self, small_app):
        async with AsyncClient(transport=ASGITransport(app=small_app), base_url="http://test") as client:
            response = await client.get("/ok")

        assert response.status_code == 200
        assert response.headers["X-Request-ID"]

    @pytest.mark.asyncio
    async def test_stagify_error_is_rendered_and_logged(self, small_app, caplog):
        with caplog.at_level(logging.WARNING):
            async with AsyncClient(transport=ASGITransport(app=small_app), base_url="http://test") as client:
                response = await client.get("/quota")

        assert response.status_code == 429
        error = response.json()["error"]
        assert error["error_code"] == "QUOTA_EXCEEDED"
        assert error["path"] == "/quota"
        assert any(r.name == "stagify.access" and r.status_code == 429 for r in caplog.records)

    @pytest.mark.asyncio
    async def test_unknown_route_uses_http_error_code(self, small_app):
        async with AsyncClient(transport=ASGITransport(app=small_app), base_url="http://test") as client:
            response = await client.get("/missing")

        assert response.status_code == 404
        assert response.json()["error"]["error_code"] == "RESOURCE_NOT_FOUND"
