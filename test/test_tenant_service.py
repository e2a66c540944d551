"""
Tests for tenant administration: signup, profile, users, settings, stats and deletion.
"""

import pytest
from sqlalchemy import func, select

from conftest import make_user
from stagify.constants.roles import TenantRole
from stagify.exceptions import (
    DuplicateResourceError,
    InvalidOperationError,
    OrganizationNotFoundError,
    UserNotFoundError,
    ValidationError,
)
from stagify.models import Organization, ResourceUsage, TenantStatus, User
from stagify.services.organization_service import (
    assign_user_to_organization,
    create_organization,
    list_organizations,
)
from stagify.services.tenant_service import (
    add_tenant_user,
    change_plan,
    create_tenant,
    delete_tenant,
    get_tenant_by_domain,
    get_tenant_by_slug,
    get_tenant_settings,
    get_tenant_stats,
    get_tenant_users,
    list_tenants,
    reactivate_tenant,
    suspend_tenant,
    update_tenant,
    update_tenant_setting,
)
from stagify.services.usage_service import record_usage


class TestCreateTenant:
    @pytest.mark.asyncio
    async def test_creates_tenant_and_owner(self, test_db):
        tenant, owner = await create_tenant("Acme Realty", "acme", "owner@acme.test", test_db, owner_name="Ann")

        assert tenant.id is not None
        assert tenant.status == TenantStatus.active.value
        assert tenant.plan == "free"
        assert tenant.settings["welcomeMessage"] == "Welcome to Acme Realty!"
        assert owner.tenant_id == tenant.id
        assert owner.role == TenantRole.OWNER.value

    @pytest.mark.asyncio
    async def test_duplicate_slug(self, test_db, acme_tenant):
        with pytest.raises(DuplicateResourceError) as exc_info:
            await create_tenant("Other Acme", "acme", "x@other.test", test_db)
        assert exc_info.value.details["field"] == "slug"

    @pytest.mark.asyncio
    async def test_duplicate_domain(self, test_db):
        await create_tenant("One", "one", "a@one.test", test_db, domain="stage.one.test")

        with pytest.raises(DuplicateResourceError):
            await create_tenant("Two", "two", "a@two.test", test_db, domain="stage.one.test")

    @pytest.mark.asyncio
    async def test_unknown_plan(self, test_db):
        with pytest.raises(ValidationError):
            await create_tenant("Acme", "acme", "a@acme.test", test_db, plan="platinum")


class TestTenantLookupAndUpdate:
    @pytest.mark.asyncio
    async def test_lookups(self, test_db):
        tenant, _ = await create_tenant("Acme", "acme", "a@acme.test", test_db, domain="stage.acme.test")

        assert (await get_tenant_by_slug("acme", test_db)).id == tenant.id
        assert (await get_tenant_by_domain("stage.acme.test", test_db)).id == tenant.id
        assert await get_tenant_by_slug("missing", test_db) is None
        assert [t.id for t in await list_tenants(test_db)] == [tenant.id]

    @pytest.mark.asyncio
    async def test_update_ignores_plan_and_status(self, test_db, acme_tenant):
        updated = await update_tenant(
            acme_tenant.id,
            {"name": "Acme Homes", "logo_url": "https://cdn.test/logo.png", "plan": "enterprise", "status": "deleted"},
            test_db,
        )

        assert updated.name == "Acme Homes"
        assert updated.logo_url == "https://cdn.test/logo.png"
        assert updated.plan == "free"
        assert updated.status == "active"

    @pytest.mark.asyncio
    async def test_update_missing_tenant(self, test_db):
        assert await update_tenant(12345, {"name": "x"}, test_db) is None

    @pytest.mark.asyncio
    async def test_change_plan_and_suspension_cycle(self, test_db, acme_tenant):
        assert (await change_plan(acme_tenant.id, "pro", test_db)).plan == "pro"
        assert (await suspend_tenant(acme_tenant.id, test_db)).status == "suspended"
        assert (await reactivate_tenant(acme_tenant.id, test_db)).status == "active"

        with pytest.raises(ValidationError):
            await change_plan(acme_tenant.id, "platinum", test_db)


class TestTenantUsers:
    @pytest.mark.asyncio
    async def test_add_and_list_users_are_tenant_scoped(self, test_db, acme_tenant, globex_tenant, globex_member):
        user = await add_tenant_user(acme_tenant.id, "new@acme.test", test_db, role="admin")

        acme_users = await get_tenant_users(acme_tenant.id, test_db)
        globex_users = await get_tenant_users(globex_tenant.id, test_db)

        assert [u.id for u in acme_users] == [user.id]
        assert [u.id for u in globex_users] == [globex_member.id]

    @pytest.mark.asyncio
    async def test_same_email_allowed_in_another_tenant(self, test_db, acme_tenant, globex_tenant):
        await add_tenant_user(acme_tenant.id, "shared@example.test", test_db)
        await add_tenant_user(globex_tenant.id, "shared@example.test", test_db)

        with pytest.raises(DuplicateResourceError):
            await add_tenant_user(acme_tenant.id, "shared@example.test", test_db)

    @pytest.mark.asyncio
    async def test_rejects_unknown_role(self, test_db, acme_tenant):
        with pytest.raises(ValidationError):
            await add_tenant_user(acme_tenant.id, "x@acme.test", test_db, role="superadmin")

    @pytest.mark.asyncio
    async def test_rejects_foreign_organization(self, test_db, acme_tenant, globex_tenant):
        foreign = await create_organization(globex_tenant.id, "Globex Team", test_db)

        with pytest.raises(ValidationError):
            await add_tenant_user(acme_tenant.id, "x@acme.test", test_db, organization_id=foreign.id)


class TestOrganizations:
    @pytest.mark.asyncio
    async def test_create_and_list(self, test_db, acme_tenant, globex_tenant):
        await create_organization(acme_tenant.id, "Sales", test_db)
        await create_organization(globex_tenant.id, "Sales", test_db)

        names = [o.name for o in await list_organizations(acme_tenant.id, test_db)]
        assert names == ["Sales"]

        with pytest.raises(DuplicateResourceError):
            await create_organization(acme_tenant.id, "Sales", test_db)

    @pytest.mark.asyncio
    async def test_assign_user_same_tenant_only(self, test_db, acme_tenant, globex_tenant, acme_member):
        sales = await create_organization(acme_tenant.id, "Sales", test_db)
        foreign = await create_organization(globex_tenant.id, "Ops", test_db)

        user = await assign_user_to_organization(acme_tenant.id, acme_member.id, sales.id, test_db)
        assert user.organization_id == sales.id

        with pytest.raises(OrganizationNotFoundError):
            await assign_user_to_organization(acme_tenant.id, acme_member.id, foreign.id, test_db)
        with pytest.raises(UserNotFoundError):
            await assign_user_to_organization(globex_tenant.id, acme_member.id, foreign.id, test_db)

        cleared = await assign_user_to_organization(acme_tenant.id, acme_member.id, None, test_db)
        assert cleared.organization_id is None


class TestSettingsAndStats:
    @pytest.mark.asyncio
    async def test_setting_upsert(self, test_db, acme_tenant, globex_tenant):
        await update_tenant_setting(acme_tenant.id, "watermark", "on", test_db)
        await update_tenant_setting(acme_tenant.id, "watermark", "off", test_db)

        assert await get_tenant_settings(acme_tenant.id, test_db) == {"watermark": "off"}
        assert await get_tenant_settings(globex_tenant.id, test_db) == {}

    @pytest.mark.asyncio
    async def test_stats(self, test_db, acme_tenant, acme_member, globex_member):
        await create_organization(acme_tenant.id, "Sales", test_db)
        await record_usage(acme_tenant.id, "staging", 1, test_db)

        stats = await get_tenant_stats(acme_tenant.id, test_db)

        assert stats["user_count"] == 1
        assert stats["project_count"] == 0
        assert stats["organization_count"] == 1
        assert stats["monthly_usage"] == {"staging": 1}


class TestDeleteTenant:
    @pytest.mark.asyncio
    async def test_refuses_with_active_users(self, test_db, acme_tenant, acme_member):
        with pytest.raises(InvalidOperationError):
            await delete_tenant(acme_tenant.id, test_db)

    @pytest.mark.asyncio
    async def test_cascade_removes_owned_rows_only(self, test_db, acme_tenant, acme_member, globex_member):
        await record_usage(acme_tenant.id, "staging", 1, test_db)
        await create_organization(acme_tenant.id, "Sales", test_db)

        assert await delete_tenant(acme_tenant.id, test_db, cascade=True) is True

        users = await test_db.execute(select(User.email))
        assert users.scalars().all() == ["member@globex.test"]
        usage = await test_db.execute(select(func.count(ResourceUsage.id)))
        assert usage.scalar() == 0
        orgs = await test_db.execute(select(func.count(Organization.id)))
        assert orgs.scalar() == 0

    @pytest.mark.asyncio
    async def test_missing_tenant(self, test_db):
        assert await delete_tenant(777, test_db) is False

    @pytest.mark.asyncio
    async def test_inactive_users_do_not_block(self, test_db, acme_tenant):
        await make_user(test_db, acme_tenant, "gone@acme.test", status="deactivated")

        assert await delete_tenant(acme_tenant.id, test_db) is True
