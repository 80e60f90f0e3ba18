"""Tests for the RoleService — role CRUD guards and user membership."""

from __future__ import annotations

import pytest
import pytest_asyncio

from conftest import register

from authcore.database.repositories.roles import SqlRoleRepository
from authcore.errors import ConflictError, ForbiddenError, NotFoundError, UserNotFoundError
from authcore.models.role import RoleType


@pytest_asyncio.fixture
async def system_roles(ctx):
    repo = SqlRoleRepository(ctx.session_factory)
    return {name: await repo.find_by_name(name) for name in ("SUPER_ADMIN", "ADMIN", "USER")}


@pytest_asyncio.fixture
async def member(ctx):
    """A second (non-first) account, so its default role is USER."""
    await register(ctx, 1)
    result = await register(ctx, 2)
    return result.user


# ── CRUD ─────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_create_role_defaults_to_custom(ctx):
    role = await ctx.roles.create_role("EDITOR", "Edits content")
    assert role.role_type == RoleType.CUSTOM
    assert not role.is_default

    with pytest.raises(ConflictError):
        await ctx.roles.create_role("EDITOR")


@pytest.mark.asyncio
async def test_system_roles_are_read_only(ctx, system_roles):
    admin = system_roles["ADMIN"]
    with pytest.raises(ForbiddenError):
        await ctx.roles.update_role(admin.id, description="changed")
    with pytest.raises(ForbiddenError):
        await ctx.roles.delete_role(admin.id)


@pytest.mark.asyncio
async def test_update_custom_role(ctx):
    role = await ctx.roles.create_role("EDITOR")
    updated = await ctx.roles.update_role(role.id, name="WRITER", description="Writes")
    assert (updated.name, updated.description) == ("WRITER", "Writes")

    with pytest.raises(NotFoundError):
        await ctx.roles.update_role("missing", name="X")


@pytest.mark.asyncio
async def test_new_default_role_replaces_the_old_one(ctx, system_roles):
    role = await ctx.roles.create_role("MEMBER", is_default=True)
    repo = SqlRoleRepository(ctx.session_factory)
    default = await repo.find_default_role()
    assert default.id == role.id
    assert not (await repo.find_by_id(system_roles["USER"].id)).is_default


@pytest.mark.asyncio
async def test_reseed_keeps_a_custom_default_role(ctx, system_roles):
    from sqlalchemy import func, select

    from authcore.database.seed import seed_catalog
    from authcore.models.role import Role

    staff = await ctx.roles.create_role("STAFF", is_default=True)
    await seed_catalog(ctx.session_factory)

    async with ctx.session_factory() as session:
        defaults = (
            await session.execute(
                select(func.count())
                .select_from(Role)
                .where(Role.active(), Role.is_default.is_(True))
            )
        ).scalar_one()
    assert defaults == 1
    assert (await SqlRoleRepository(ctx.session_factory).find_default_role()).id == staff.id


@pytest.mark.asyncio
async def test_delete_custom_role_cascades(ctx):
    role = await ctx.roles.create_role("TEMP")
    privilege = await ctx.privileges.create_privilege("temp:run", "SYSTEM")
    await ctx.privileges.assign_privilege_to_role(role.id, privilege.id)

    await ctx.roles.delete_role(role.id)

    with pytest.raises(NotFoundError):
        await ctx.roles.get_role(role.id)
    assert not await ctx.privileges.has_privilege(role.id, "temp:run")

    # The name is free again once the old row is soft-deleted.
    again = await ctx.roles.create_role("TEMP")
    assert again.id != role.id


@pytest.mark.asyncio
async def test_cannot_delete_role_in_use_as_default(ctx, member):
    role = await ctx.roles.create_role("TEAM")
    await ctx.roles.assign_roles_to_user(member.id, [role.id])
    await ctx.auth.switch_active_role(member.id, role.id)

    with pytest.raises(ConflictError):
        await ctx.roles.delete_role(role.id)


@pytest.mark.asyncio
async def test_list_roles_paginates_and_searches(ctx):
    for name in ("ALPHA", "BETA", "GAMMA"):
        await ctx.roles.create_role(name)

    page = await ctx.roles.list_roles(skip=0, take=2)
    assert page.total == 6
    assert len(page.items) == 2
    assert page.page == 1

    second = await ctx.roles.list_roles(skip=2, take=2)
    assert second.page == 2

    searched = await ctx.roles.list_roles(search="admin")
    assert {r.name for r in searched.items} == {"SUPER_ADMIN", "ADMIN"}


# ── Membership ───────────────────────────────────────────

@pytest.mark.asyncio
async def test_assign_roles_is_deduplicated(ctx, member, system_roles):
    admin = system_roles["ADMIN"]
    roles = await ctx.roles.assign_roles_to_user(member.id, [admin.id, admin.id])
    assert {r.name for r in roles} == {"ADMIN", "USER"}
    assert await ctx.roles.get_user_count(admin.id) == 1
    assert await ctx.roles.validate_user_role(member.id, admin.id)


@pytest.mark.asyncio
async def test_assign_existing_membership_conflicts(ctx, member, system_roles):
    with pytest.raises(ConflictError):
        await ctx.roles.assign_roles_to_user(member.id, [system_roles["USER"].id])


@pytest.mark.asyncio
async def test_assign_is_all_or_nothing(ctx, member, system_roles):
    admin = system_roles["ADMIN"]
    with pytest.raises(NotFoundError):
        await ctx.roles.assign_roles_to_user(member.id, [admin.id, "no-such-role"])
    assert not await ctx.roles.validate_user_role(member.id, admin.id)


@pytest.mark.asyncio
async def test_assign_to_unknown_user(ctx, system_roles):
    with pytest.raises(UserNotFoundError):
        await ctx.roles.assign_roles_to_user("nobody", [system_roles["ADMIN"].id])


@pytest.mark.asyncio
async def test_cannot_remove_active_role(ctx, member, system_roles):
    with pytest.raises(ConflictError):
        await ctx.roles.remove_role_from_user(member.id, system_roles["USER"].id)


@pytest.mark.asyncio
async def test_remove_role(ctx, member, system_roles):
    admin = system_roles["ADMIN"]
    await ctx.roles.assign_roles_to_user(member.id, [admin.id])
    await ctx.roles.remove_role_from_user(member.id, admin.id)
    assert [r.name for r in await ctx.roles.get_user_roles(member.id)] == ["USER"]

    with pytest.raises(NotFoundError):
        await ctx.roles.remove_role_from_user(member.id, admin.id)


@pytest.mark.asyncio
async def test_validate_user_role_for_unknown_user(ctx, system_roles):
    assert not await ctx.roles.validate_user_role("nobody", system_roles["USER"].id)
