"""Tests for the PrivilegeService — authorization decisions and the catalog."""

from __future__ import annotations

import pytest
import pytest_asyncio

from authcore.database.repositories.privileges import SqlPrivilegeRepository
from authcore.database.repositories.roles import SqlRoleRepository
from authcore.errors import (
    ConflictError,
    ForbiddenError,
    InvalidActionError,
    NotFoundError,
    ValidationError,
)
from authcore.models.role import PrivilegeGroup


@pytest_asyncio.fixture
async def role_repo(ctx):
    return SqlRoleRepository(ctx.session_factory)


@pytest_asyncio.fixture
async def custom_role(ctx):
    return await ctx.roles.create_role("AUDITOR", "Read-only auditors")


# ── Seeded grants ────────────────────────────────────────

@pytest.mark.asyncio
async def test_seeded_role_grants(ctx, role_repo):
    user_role = await role_repo.find_by_name("USER")
    admin = await role_repo.find_by_name("ADMIN")
    super_admin = await role_repo.find_by_name("SUPER_ADMIN")

    assert await ctx.privileges.has_privilege(user_role.id, "profile:read")
    assert not await ctx.privileges.has_privilege(user_role.id, "user:read")
    assert await ctx.privileges.has_privilege(admin.id, "settings:read")
    assert not await ctx.privileges.has_privilege(admin.id, "settings:update")
    assert len(await ctx.privileges.get_role_privileges(super_admin.id)) == 13


@pytest.mark.asyncio
async def test_seed_is_idempotent(ctx, role_repo):
    from authcore.database.seed import seed_catalog

    await seed_catalog(ctx.session_factory)
    admin = await role_repo.find_by_name("ADMIN")
    assert len(await ctx.privileges.get_role_privileges(admin.id)) == 6
    page = await ctx.privileges.list_privileges(take=50)
    assert page.total == 13


# ── check_privilege ──────────────────────────────────────

@pytest.mark.asyncio
async def test_check_privilege_reports_missing_in_order(ctx, custom_role):
    a = await ctx.privileges.create_privilege("report:a", PrivilegeGroup.SYSTEM)
    await ctx.privileges.create_privilege("report:b", "SYSTEM")
    await ctx.privileges.assign_privilege_to_role(custom_role.id, a.id)

    check = await ctx.privileges.check_privilege(custom_role.id, ["report:a", "report:b"])
    assert not check.granted
    assert check.missing_privileges == ["report:b"]

    single = await ctx.privileges.check_privilege(custom_role.id, "report:a")
    assert single.granted
    assert single.to_dict() == {"granted": True}


@pytest.mark.asyncio
@pytest.mark.parametrize("actions", ["", "   ", ["profile:read", ""], ["profile:read", 42]])
async def test_check_privilege_rejects_bad_actions(ctx, custom_role, actions):
    with pytest.raises(InvalidActionError):
        await ctx.privileges.check_privilege(custom_role.id, actions)


@pytest.mark.asyncio
async def test_deleted_privilege_is_not_granted(ctx, custom_role):
    privilege = await ctx.privileges.create_privilege("report:export", "SYSTEM")
    await ctx.privileges.assign_privilege_to_role(custom_role.id, privilege.id)
    await ctx.privileges.delete_privilege(privilege.id)
    assert not await ctx.privileges.has_privilege(custom_role.id, "report:export")


# ── Role edges ───────────────────────────────────────────

@pytest.mark.asyncio
async def test_duplicate_assignment_conflicts(ctx, custom_role):
    privilege = await ctx.privileges.create_privilege("report:view", "SYSTEM")
    await ctx.privileges.assign_privilege_to_role(custom_role.id, privilege.id)
    with pytest.raises(ConflictError):
        await ctx.privileges.assign_privilege_to_role(custom_role.id, privilege.id)


@pytest.mark.asyncio
async def test_assign_to_unknown_role_or_privilege(ctx, custom_role):
    privilege = await ctx.privileges.create_privilege("report:view", "SYSTEM")
    with pytest.raises(NotFoundError):
        await ctx.privileges.assign_privilege_to_role("no-such-role", privilege.id)
    with pytest.raises(NotFoundError):
        await ctx.privileges.assign_privilege_to_role(custom_role.id, "no-such-privilege")


@pytest.mark.asyncio
async def test_removing_absent_assignment_is_not_found(ctx, custom_role):
    privilege = await ctx.privileges.create_privilege("report:view", "SYSTEM")
    with pytest.raises(NotFoundError):
        await ctx.privileges.remove_privilege_from_role(custom_role.id, privilege.id)


@pytest.mark.asyncio
async def test_remove_from_unknown_role_or_privilege(ctx, custom_role):
    privilege = await ctx.privileges.create_privilege("report:view", "SYSTEM")
    await ctx.privileges.assign_privilege_to_role(custom_role.id, privilege.id)
    with pytest.raises(NotFoundError, match="Role not found"):
        await ctx.privileges.remove_privilege_from_role("no-such-role", privilege.id)
    with pytest.raises(NotFoundError, match="Privilege not found"):
        await ctx.privileges.remove_privilege_from_role(custom_role.id, "no-such-privilege")
    assert await ctx.privileges.has_privilege(custom_role.id, "report:view")


@pytest.mark.asyncio
async def test_system_role_grants_are_read_only(ctx, role_repo):
    from authcore.database.seed import seed_catalog

    user_role = await role_repo.find_by_name("USER")
    privilege_repo = SqlPrivilegeRepository(ctx.session_factory)
    role_delete = await privilege_repo.find_by_name("role:delete")
    profile_read = await privilege_repo.find_by_name("profile:read")

    with pytest.raises(ForbiddenError):
        await ctx.privileges.assign_privilege_to_role(user_role.id, role_delete.id)
    with pytest.raises(ForbiddenError):
        await ctx.privileges.remove_privilege_from_role(user_role.id, profile_read.id)

    await seed_catalog(ctx.session_factory)
    assert not await ctx.privileges.has_privilege(user_role.id, "role:delete")
    assert await ctx.privileges.has_privilege(user_role.id, "profile:read")


@pytest.mark.asyncio
async def test_remove_then_reassign(ctx, custom_role):
    privilege = await ctx.privileges.create_privilege("report:view", "SYSTEM")
    await ctx.privileges.assign_privilege_to_role(custom_role.id, privilege.id)
    await ctx.privileges.remove_privilege_from_role(custom_role.id, privilege.id)
    assert not await ctx.privileges.has_privilege(custom_role.id, "report:view")

    await ctx.privileges.assign_privilege_to_role(custom_role.id, privilege.id)
    assert await ctx.privileges.has_privilege(custom_role.id, "report:view")


# ── Catalog ──────────────────────────────────────────────

@pytest.mark.asyncio
async def test_privilege_name_is_unique(ctx):
    with pytest.raises(ConflictError):
        await ctx.privileges.create_privilege("profile:read", "PROFILE")


@pytest.mark.asyncio
async def test_unknown_group_is_a_validation_error(ctx):
    with pytest.raises(ValidationError):
        await ctx.privileges.create_privilege("report:view", "NOPE")


@pytest.mark.asyncio
async def test_list_privileges_filters(ctx):
    page = await ctx.privileges.list_privileges(group="ROLE_MANAGEMENT", take=10)
    assert page.total == 4
    assert {p.privilege_name for p in page.items} == {
        "role:create",
        "role:read",
        "role:update",
        "role:delete",
    }

    searched = await ctx.privileges.list_privileges(search="SETTINGS:")
    assert searched.total == 2


@pytest.mark.asyncio
async def test_update_privilege(ctx):
    privilege = await ctx.privileges.create_privilege("report:view", "SYSTEM")
    updated = await ctx.privileges.update_privilege(
        privilege.id, description="View reports", privilege_group="SETTINGS"
    )
    assert updated.description == "View reports"
    assert updated.privilege_group == PrivilegeGroup.SETTINGS

    with pytest.raises(NotFoundError):
        await ctx.privileges.update_privilege("missing", description="x")
