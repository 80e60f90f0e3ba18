"""Role service — role catalog and user membership."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from authcore.database.interfaces import RoleRepository, UserRepository
from authcore.errors import ConflictError, ForbiddenError, NotFoundError, UserNotFoundError, guard
from authcore.models.role import Role, RoleType
from authcore.services.types import Page

logger = logging.getLogger(__name__)


class RoleService:
    """CRUD over roles plus the guards that keep the role graph consistent.

    * SYSTEM roles are read-only: no update, no delete.
    * A role that is some user's active (default) role cannot be deleted.
    * A user's active role cannot be removed from their memberships.
    """

    def __init__(self, roles: RoleRepository, users: UserRepository) -> None:
        self._roles = roles
        self._users = users

    @guard("Failed to create role")
    async def create_role(
        self,
        name: str,
        description: str | None = None,
        role_type: RoleType | str = RoleType.CUSTOM,
        is_default: bool = False,
    ) -> Role:
        if await self._roles.find_by_name(name) is not None:
            raise ConflictError(f"Role already exists: {name}")
        role = await self._roles.create(
            name=name,
            description=description,
            role_type=RoleType(role_type),
            is_default=is_default,
        )
        logger.info("Role created: %s (%s)", role.name, role.id)
        return role

    @guard("Failed to update role")
    async def update_role(
        self,
        role_id: str,
        *,
        name: str | None = None,
        description: str | None = None,
        is_default: bool | None = None,
    ) -> Role:
        role = await self.get_role(role_id)
        if role.is_system:
            raise ForbiddenError("System roles cannot be modified")

        fields: dict = {}
        if name is not None:
            fields["name"] = name
        if description is not None:
            fields["description"] = description
        if is_default is not None:
            fields["is_default"] = is_default
        updated = await self._roles.update(role_id, **fields)
        logger.info("Role updated: %s", role_id)
        return updated

    @guard("Failed to delete role")
    async def delete_role(self, role_id: str) -> None:
        role = await self.get_role(role_id)
        if role.is_system:
            raise ForbiddenError("System roles cannot be deleted")

        holders, _ = await self._users.find_many(take=1, default_role_id=role_id)
        if holders:
            raise ConflictError("Cannot delete role as it is set as default for some users")

        await self._roles.delete(role_id)
        logger.info("Role deleted: %s", role_id)

    @guard("Failed to get role")
    async def get_role(self, role_id: str) -> Role:
        role = await self._roles.find_by_id(role_id)
        if role is None:
            raise NotFoundError("Role not found")
        return role

    @guard("Failed to count role users")
    async def get_user_count(self, role_id: str) -> int:
        await self.get_role(role_id)
        return await self._roles.get_user_count(role_id)

    @guard("Failed to list roles")
    async def list_roles(
        self, *, skip: int = 0, take: int = 10, search: str | None = None
    ) -> Page[Role]:
        items, total = await self._roles.find_many(skip=skip, take=take, search=search)
        return Page.build(items, total, skip, take)

    # ── Membership ───────────────────────────────────────

    @guard("Failed to assign roles")
    async def assign_roles_to_user(self, user_id: str, role_ids: Sequence[str]) -> list[Role]:
        """Add every role in *role_ids* to the user, or none of them.

        Each role must exist and must not already be held; repeated ids in the
        input are collapsed first.
        """
        if await self._users.find_by_id(user_id) is None:
            raise UserNotFoundError()

        unique_ids = list(dict.fromkeys(role_ids))
        for role_id in unique_ids:
            if await self._roles.find_by_id(role_id) is None:
                raise NotFoundError(f"Role not found: {role_id}")

        await self._roles.assign_to_user(user_id, unique_ids)
        logger.info("Roles %s assigned to user %s", unique_ids, user_id)
        return await self.get_user_roles(user_id)

    @guard("Failed to remove role")
    async def remove_role_from_user(self, user_id: str, role_id: str) -> None:
        user = await self._users.find_by_id(user_id)
        if user is None:
            raise UserNotFoundError()
        if user.default_role_id == role_id:
            raise ConflictError("Cannot remove default role from user")

        await self._roles.remove_from_user(user_id, role_id)
        logger.info("Role %s removed from user %s", role_id, user_id)

    @guard("Failed to get user roles")
    async def get_user_roles(self, user_id: str) -> list[Role]:
        found = await self._users.find_by_id_with_roles(user_id)
        if found is None:
            raise UserNotFoundError()
        return found.roles

    @guard("Failed to validate user role")
    async def validate_user_role(self, user_id: str, role_id: str) -> bool:
        found = await self._users.find_by_id_with_roles(user_id)
        if found is None:
            return False
        return role_id in found.role_ids
