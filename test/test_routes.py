"""
HTTP tests for the tenant, project and usage routes.

Builds the application with create_app(), a mock generation client and a
temporary storage root, and overrides get_db with the test session factory.
"""

from io import BytesIO

import pytest
from httpx import ASGITransport, AsyncClient
from PIL import Image

from conftest import auth_headers_for, make_user
from stagify.constants.roles import TenantRole
from stagify.database import get_db
from stagify.main import create_app
from stagify.services.generation_service import MockGenerationClient
from stagify.services.storage_service import LocalObjectStorage
from stagify.services.tenant_service import suspend_tenant
from stagify.services.usage_service import record_usage


def _png_bytes() -> bytes:
    buffer = BytesIO()
    Image.new("RGB", (32, 24), color=(250, 250, 250)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def generation_client():
    return MockGenerationClient()


@pytest.fixture
def app(session_factory, generation_client, tmp_path):
    application = create_app(
        generation_client=generation_client,
        storage=LocalObjectStorage(tmp_path, "http://test/media"),
    )

    async def override_get_db():
        async with session_factory() as session:
            yield session

    application.dependency_overrides[get_db] = override_get_db
    return application


@pytest.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http_client:
        yield http_client


async def _upload(client, user, style="modern"):
    return await client.post(
        "/api/v1/projects",
        files={"file": ("room.png", _png_bytes(), "image/png")},
        data={"style": style},
        headers=auth_headers_for(user),
    )


class TestHealthAndMiddleware:
    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    @pytest.mark.asyncio
    async def test_request_id_is_echoed(self, client):
        response = await client.get("/health", headers={"X-Request-ID": "req-123"})

        assert response.headers["X-Request-ID"] == "req-123"


class TestSignupAndTenant:
    @pytest.mark.asyncio
    async def test_signup_returns_token_for_owner(self, client):
        response = await client.post(
            "/api/v1/tenants/signup",
            json={"name": "Acme Realty", "slug": "acme-realty", "owner_email": "owner@example.com"},
        )

        assert response.status_code == 201
        body = response.json()
        assert body["tenant"]["slug"] == "acme-realty"
        assert body["tenant"]["plan"] == "free"

        me = await client.get("/api/v1/tenant", headers={"Authorization": f"Bearer {body['access_token']}"})
        assert me.status_code == 200
        assert me.json()["id"] == body["tenant"]["id"]

    @pytest.mark.asyncio
    async def test_signup_duplicate_slug(self, client, acme_tenant):
        response = await client.post(
            "/api/v1/tenants/signup",
            json={"name": "Acme", "slug": "acme", "owner_email": "owner@example.com"},
        )

        assert response.status_code == 409
        assert response.json()["error"]["error_code"] == "DUPLICATE_RESOURCE"

    @pytest.mark.asyncio
    async def test_missing_token_is_unauthenticated(self, client):
        response = await client.get("/api/v1/tenant")

        assert response.status_code == 401
        assert response.json()["error"]["error_code"] == "UNAUTHENTICATED"

    @pytest.mark.asyncio
    async def test_forged_token_is_unauthenticated(self, client):
        response = await client.get("/api/v1/tenant", headers={"Authorization": "Bearer not-a-jwt"})

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_suspended_tenant_is_denied(self, client, test_db, acme_tenant, acme_member):
        await suspend_tenant(acme_tenant.id, test_db)

        response = await client.get("/api/v1/tenant", headers=auth_headers_for(acme_member))

        assert response.status_code == 403
        assert response.json()["error"]["error_code"] == "NO_TENANT_CONTEXT"

    @pytest.mark.asyncio
    async def test_viewer_cannot_create_organization(self, client, acme_viewer):
        response = await client.post(
            "/api/v1/tenant/organizations", json={"name": "Sales"}, headers=auth_headers_for(acme_viewer)
        )

        assert response.status_code == 403
        error = response.json()["error"]
        assert error["error_code"] == "INSUFFICIENT_ROLE"
        assert error["details"] == {"role": "viewer", "required_role": "admin"}

    @pytest.mark.asyncio
    async def test_admin_creates_and_viewer_lists_organizations(self, client, acme_admin, acme_viewer):
        created = await client.post(
            "/api/v1/tenant/organizations", json={"name": "Sales"}, headers=auth_headers_for(acme_admin)
        )
        listed = await client.get("/api/v1/tenant/organizations", headers=auth_headers_for(acme_viewer))

        assert created.status_code == 201
        assert [o["name"] for o in listed.json()] == ["Sales"]

    @pytest.mark.asyncio
    async def test_free_plan_cannot_add_team_members(self, client, acme_admin):
        response = await client.post(
            "/api/v1/tenant/users", json={"email": "new@example.com"}, headers=auth_headers_for(acme_admin)
        )

        assert response.status_code == 403
        assert response.json()["error"]["error_code"] == "PLAN_FEATURE_DENIED"

    @pytest.mark.asyncio
    async def test_pro_admin_adds_team_member(self, client, test_db, globex_tenant):
        admin = await make_user(test_db, globex_tenant, "admin@globex.test", role=TenantRole.ADMIN.value)

        response = await client.post(
            "/api/v1/tenant/users",
            json={"email": "new@example.com", "role": "viewer"},
            headers=auth_headers_for(admin),
        )

        assert response.status_code == 201
        assert response.json()["role"] == "viewer"

    @pytest.mark.asyncio
    async def test_custom_domain_needs_feature(self, client, acme_admin):
        response = await client.patch(
            "/api/v1/tenant", json={"domain": "stage.acme.example"}, headers=auth_headers_for(acme_admin)
        )

        assert response.status_code == 403
        assert response.json()["error"]["details"]["feature"] == "custom_domain"

    @pytest.mark.asyncio
    async def test_admin_updates_name(self, client, acme_admin):
        response = await client.patch("/api/v1/tenant", json={"name": "Acme Homes"}, headers=auth_headers_for(acme_admin))

        assert response.status_code == 200
        assert response.json()["name"] == "Acme Homes"

    @pytest.mark.asyncio
    async def test_settings_roundtrip(self, client, acme_admin, acme_member):
        put = await client.put(
            "/api/v1/tenant/settings/watermark", json={"value": "on"}, headers=auth_headers_for(acme_admin)
        )
        get = await client.get("/api/v1/tenant/settings", headers=auth_headers_for(acme_member))

        assert put.status_code == 200
        assert get.json() == {"watermark": "on"}

    @pytest.mark.asyncio
    async def test_stats(self, client, acme_viewer):
        response = await client.get("/api/v1/tenant/stats", headers=auth_headers_for(acme_viewer))

        assert response.status_code == 200
        assert response.json()["user_count"] == 1


class TestProjectRoutes:
    @pytest.mark.asyncio
    async def test_member_stages_room(self, client, acme_member, generation_client):
        response = await _upload(client, acme_member)

        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "completed"
        assert body["style"] == "modern"
        assert body["metadata"]["original_width"] == 32
        assert len(generation_client.calls) == 1

        usage = await client.get("/api/v1/usage/staging", headers=auth_headers_for(acme_member))
        assert usage.json() == {"resource_type": "staging", "period": "monthly", "used": 1, "limit": 10, "remaining": 9}

    @pytest.mark.asyncio
    async def test_viewer_cannot_stage(self, client, acme_viewer, generation_client):
        response = await _upload(client, acme_viewer)

        assert response.status_code == 403
        assert response.json()["error"]["error_code"] == "INSUFFICIENT_ROLE"
        assert generation_client.calls == []

    @pytest.mark.asyncio
    async def test_advanced_style_needs_feature(self, client, acme_member, generation_client):
        response = await _upload(client, acme_member, style="bohemian")

        assert response.status_code == 403
        assert response.json()["error"]["error_code"] == "PLAN_FEATURE_DENIED"
        assert generation_client.calls == []

    @pytest.mark.asyncio
    async def test_unknown_style(self, client, acme_member):
        response = await _upload(client, acme_member, style="baroque")

        assert response.status_code == 400
        assert response.json()["error"]["error_code"] == "VALIDATION_FAILED"

    @pytest.mark.asyncio
    async def test_quota_exhausted(self, client, test_db, acme_tenant, acme_member, generation_client):
        await record_usage(acme_tenant.id, "staging", 10, test_db)

        response = await _upload(client, acme_member)

        assert response.status_code == 429
        error = response.json()["error"]
        assert error["error_code"] == "QUOTA_EXCEEDED"
        assert error["details"]["remaining"] == 0
        assert generation_client.calls == []

    @pytest.mark.asyncio
    async def test_storage_quota_exhausted(self, client, test_db, acme_tenant, acme_member, generation_client):
        await record_usage(acme_tenant.id, "storage_bytes", 500 * 1024 * 1024, test_db)

        response = await _upload(client, acme_member)

        assert response.status_code == 429
        error = response.json()["error"]
        assert error["error_code"] == "QUOTA_EXCEEDED"
        assert error["details"]["resource_type"] == "storage_bytes"
        assert generation_client.calls == []

    @pytest.mark.asyncio
    async def test_projects_are_tenant_scoped(self, client, acme_member, globex_member):
        created = await _upload(client, acme_member)
        project_id = created.json()["id"]

        own = await client.get(f"/api/v1/projects/{project_id}", headers=auth_headers_for(acme_member))
        foreign = await client.get(f"/api/v1/projects/{project_id}", headers=auth_headers_for(globex_member))
        foreign_list = await client.get("/api/v1/projects", headers=auth_headers_for(globex_member))

        assert own.status_code == 200
        assert foreign.status_code == 404
        assert foreign_list.json()["items"] == []

    @pytest.mark.asyncio
    async def test_list_filters_by_status(self, client, acme_member):
        await _upload(client, acme_member)

        completed = await client.get("/api/v1/projects?status=completed", headers=auth_headers_for(acme_member))
        failed = await client.get("/api/v1/projects?status=failed", headers=auth_headers_for(acme_member))

        assert len(completed.json()["items"]) == 1
        assert failed.json()["items"] == []

    @pytest.mark.asyncio
    async def test_retry_completed_project_conflicts(self, client, acme_member):
        created = await _upload(client, acme_member)

        response = await client.post(
            f"/api/v1/projects/{created.json()['id']}/retry", headers=auth_headers_for(acme_member)
        )

        assert response.status_code == 409
        assert response.json()["error"]["error_code"] == "INVALID_STATUS_TRANSITION"


class TestUsageRoutes:
    @pytest.mark.asyncio
    async def test_unconfigured_resource_reports_zero_limit(self, client, acme_viewer):
        response = await client.get("/api/v1/usage/api_call", headers=auth_headers_for(acme_viewer))

        assert response.status_code == 200
        assert response.json()["limit"] == 0
        assert response.json()["remaining"] == 0

    @pytest.mark.asyncio
    async def test_unknown_resource(self, client, acme_viewer):
        response = await client.get("/api/v1/usage/gpu_minutes", headers=auth_headers_for(acme_viewer))

        assert response.status_code == 422
