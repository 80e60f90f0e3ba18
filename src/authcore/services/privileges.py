"""Privilege service — the privilege catalog and the authorization decision.

:meth:`PrivilegeService.check_privilege` is the single decision point used
by request handling: a role is granted a set of actions only when an active
role→privilege edge exists for every one of them.  There is no role
hierarchy; each role's grants are exactly its own edges.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence

from authcore.database.interfaces import PrivilegeRepository, RoleRepository
from authcore.errors import (
    ForbiddenError,
    InvalidActionError,
    NotFoundError,
    ValidationError,
    guard,
)
from authcore.models.role import Privilege, PrivilegeGroup, Role
from authcore.services.types import Page, PrivilegeCheck

logger = logging.getLogger(__name__)


def parse_group(group: PrivilegeGroup | str) -> PrivilegeGroup:
    try:
        return PrivilegeGroup(group)
    except ValueError:
        raise ValidationError(f"Unknown privilege group: {group}") from None


class PrivilegeService:
    def __init__(self, privileges: PrivilegeRepository, roles: RoleRepository) -> None:
        self._privileges = privileges
        self._roles = roles

    # ── Authorization ────────────────────────────────────

    @guard("Failed to check privilege")
    async def has_privilege(self, role_id: str, privilege_name: str) -> bool:
        return await self._roles.has_privilege(role_id, privilege_name)

    @guard("Failed to check privileges")
    async def check_privilege(self, role_id: str, actions: str | Sequence[str]) -> PrivilegeCheck:
        """Evaluate one or many actions for *role_id*.

        Every action must be a non-blank string; a bad one fails the whole call
        before any lookup.  Lookups run concurrently and their order is not
        significant; ``missing_privileges`` keeps the caller's order.
        """
        action_list = [actions] if isinstance(actions, str) else list(actions)
        for action in action_list:
            if not isinstance(action, str) or not action.strip():
                raise InvalidActionError(f"Invalid action: {action!r}")

        results = await asyncio.gather(
            *(self._roles.has_privilege(role_id, action) for action in action_list)
        )
        missing = [action for action, ok in zip(action_list, results) if not ok]
        if missing:
            logger.info("Role %s lacks privileges: %s", role_id, ", ".join(missing))
        return PrivilegeCheck(granted=not missing, missing_privileges=missing)

    # ── Catalog ──────────────────────────────────────────

    @guard("Failed to create privilege")
    async def create_privilege(
        self,
        privilege_name: str,
        privilege_group: PrivilegeGroup | str,
        description: str | None = None,
    ) -> Privilege:
        privilege = await self._privileges.create(
            privilege_name=privilege_name,
            privilege_group=parse_group(privilege_group),
            description=description,
        )
        logger.info("Privilege created: %s (%s)", privilege.privilege_name, privilege.id)
        return privilege

    @guard("Failed to update privilege")
    async def update_privilege(
        self,
        privilege_id: str,
        *,
        privilege_name: str | None = None,
        description: str | None = None,
        privilege_group: PrivilegeGroup | str | None = None,
    ) -> Privilege:
        await self.get_privilege(privilege_id)
        fields: dict = {}
        if privilege_name is not None:
            fields["privilege_name"] = privilege_name
        if description is not None:
            fields["description"] = description
        if privilege_group is not None:
            fields["privilege_group"] = parse_group(privilege_group)
        privilege = await self._privileges.update(privilege_id, **fields)
        logger.info("Privilege updated: %s", privilege_id)
        return privilege

    @guard("Failed to delete privilege")
    async def delete_privilege(self, privilege_id: str) -> None:
        await self.get_privilege(privilege_id)
        await self._privileges.delete(privilege_id)
        logger.info("Privilege deleted: %s", privilege_id)

    @guard("Failed to get privilege")
    async def get_privilege(self, privilege_id: str) -> Privilege:
        privilege = await self._privileges.find_by_id(privilege_id)
        if privilege is None:
            raise NotFoundError("Privilege not found")
        return privilege

    @guard("Failed to list privileges")
    async def list_privileges(
        self,
        *,
        skip: int = 0,
        take: int = 10,
        search: str | None = None,
        group: PrivilegeGroup | str | None = None,
    ) -> Page[Privilege]:
        items, total = await self._privileges.find_many(
            skip=skip,
            take=take,
            search=search,
            group=parse_group(group) if group is not None else None,
        )
        return Page.build(items, total, skip, take)

    # ── Role edges ───────────────────────────────────────

    async def _editable_role(self, role_id: str) -> Role:
        role = await self._roles.find_by_id(role_id)
        if role is None:
            raise NotFoundError("Role not found")
        if role.is_system:
            raise ForbiddenError("System role privileges cannot be modified")
        return role

    @guard("Failed to assign privilege")
    async def assign_privilege_to_role(self, role_id: str, privilege_id: str) -> None:
        await self._editable_role(role_id)
        await self.get_privilege(privilege_id)
        await self._privileges.assign_to_role(role_id, privilege_id)
        logger.info("Privilege %s assigned to role %s", privilege_id, role_id)

    @guard("Failed to remove privilege")
    async def remove_privilege_from_role(self, role_id: str, privilege_id: str) -> None:
        """Remove an active edge; removing an absent one is ``NotFoundError``, not a no-op."""
        await self._editable_role(role_id)
        await self.get_privilege(privilege_id)
        await self._privileges.remove_from_role(role_id, privilege_id)
        logger.info("Privilege %s removed from role %s", privilege_id, role_id)

    @guard("Failed to get role privileges")
    async def get_role_privileges(self, role_id: str) -> list[Privilege]:
        if await self._roles.find_by_id(role_id) is None:
            raise NotFoundError("Role not found")
        return await self._privileges.find_by_role_id(role_id)
