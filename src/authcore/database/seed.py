"""Seed data — the built-in privilege catalog and the three system roles."""

from __future__ import annotations

import logging

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from authcore.models.base import utcnow
from authcore.models.role import Privilege, PrivilegeGroup, Role, RolePrivilege, RoleType, SystemRole

logger = logging.getLogger(__name__)

DEFAULT_PRIVILEGES: list[tuple[str, str, PrivilegeGroup]] = [
    ("user:create", "Can create users", PrivilegeGroup.USER_MANAGEMENT),
    ("user:read", "Can view user details", PrivilegeGroup.USER_MANAGEMENT),
    ("user:update", "Can update user details", PrivilegeGroup.USER_MANAGEMENT),
    ("user:delete", "Can delete users", PrivilegeGroup.USER_MANAGEMENT),
    ("profile:read", "Can view profiles", PrivilegeGroup.PROFILE),
    ("profile:update", "Can update profiles", PrivilegeGroup.PROFILE),
    ("role:create", "Can create roles", PrivilegeGroup.ROLE_MANAGEMENT),
    ("role:read", "Can view roles", PrivilegeGroup.ROLE_MANAGEMENT),
    ("role:update", "Can update roles", PrivilegeGroup.ROLE_MANAGEMENT),
    ("role:delete", "Can delete roles", PrivilegeGroup.ROLE_MANAGEMENT),
    ("settings:read", "Can view settings", PrivilegeGroup.SETTINGS),
    ("settings:update", "Can update settings", PrivilegeGroup.SETTINGS),
    ("system:manage", "Can manage system configurations", PrivilegeGroup.SYSTEM),
]

DEFAULT_ROLES: list[tuple[SystemRole, str, bool]] = [
    (SystemRole.SUPER_ADMIN, "Full system access", False),
    (SystemRole.ADMIN, "Administrative access with limitations", False),
    (SystemRole.USER, "Standard user access", True),
]

ROLE_PRIVILEGES: dict[SystemRole, list[str]] = {
    SystemRole.SUPER_ADMIN: [name for name, _, _ in DEFAULT_PRIVILEGES],
    SystemRole.ADMIN: [
        "user:read",
        "user:update",
        "profile:read",
        "profile:update",
        "role:read",
        "settings:read",
    ],
    SystemRole.USER: ["profile:read", "profile:update"],
}


async def seed_catalog(session_factory: async_sessionmaker[AsyncSession]) -> None:
    """Upsert privileges, system roles and their grants; safe to run repeatedly.

    A system role's grants are reset to exactly the built-in set: missing
    edges are added and extra ones soft-deleted.  USER is made the default
    role only while no active role is default, so a default chosen later
    survives a reseed.
    """
    async with session_factory.begin() as session:
        privileges: dict[str, Privilege] = {}
        for name, description, group in DEFAULT_PRIVILEGES:
            privilege = (
                await session.execute(
                    select(Privilege).where(Privilege.active(), Privilege.privilege_name == name)
                )
            ).scalar_one_or_none()
            if privilege is None:
                privilege = Privilege(privilege_name=name)
                session.add(privilege)
            privilege.description = description
            privilege.privilege_group = group
            privileges[name] = privilege

        has_default = (
            await session.execute(
                select(Role.id).where(Role.active(), Role.is_default.is_(True)).limit(1)
            )
        ).first() is not None

        roles: dict[SystemRole, Role] = {}
        for role_name, description, is_default in DEFAULT_ROLES:
            role = (
                await session.execute(
                    select(Role).where(Role.active(), Role.name == role_name.value)
                )
            ).scalar_one_or_none()
            if role is None:
                role = Role(name=role_name.value, is_default=False)
                session.add(role)
            role.description = description
            role.role_type = RoleType.SYSTEM
            if is_default and not has_default:
                role.is_default = True
            roles[role_name] = role

        await session.flush()

        for role_name, names in ROLE_PRIVILEGES.items():
            role = roles[role_name]
            wanted = {privileges[name].id for name in names}
            current = set(
                (
                    await session.execute(
                        select(RolePrivilege.privilege_id).where(
                            RolePrivilege.active(), RolePrivilege.role_id == role.id
                        )
                    )
                ).scalars()
            )
            for privilege_id in wanted - current:
                session.add(RolePrivilege(role_id=role.id, privilege_id=privilege_id))
            stale = current - wanted
            if stale:
                await session.execute(
                    update(RolePrivilege)
                    .where(
                        RolePrivilege.active(),
                        RolePrivilege.role_id == role.id,
                        RolePrivilege.privilege_id.in_(stale),
                    )
                    .values(deleted_at=utcnow())
                )

    logger.info(
        "Seeded %d privileges and %d system roles", len(DEFAULT_PRIVILEGES), len(DEFAULT_ROLES)
    )
