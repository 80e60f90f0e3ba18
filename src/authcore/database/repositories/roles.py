"""Role repository — roles, user membership and the privilege lookup."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from sqlalchemy import or_, select, update

from authcore.database.interfaces import RoleRepository
from authcore.database.repositories.base import SqlRepository, contains, count_active, select_active
from authcore.errors import ConflictError, NotFoundError
from authcore.models.base import utcnow
from authcore.models.role import Privilege, Role, RolePrivilege, RoleType
from authcore.models.user import User, UserRole

_UPDATABLE = {"name", "description", "is_default"}


class SqlRoleRepository(SqlRepository, RoleRepository):
    """Encapsulates all database queries related to roles."""

    async def find_by_id(self, role_id: str) -> Role | None:
        async with self._session_factory() as session:
            result = await session.execute(select_active(Role, Role.id == role_id))
            return result.scalar_one_or_none()

    async def find_by_name(self, name: str) -> Role | None:
        async with self._session_factory() as session:
            result = await session.execute(select_active(Role, Role.name == name))
            return result.scalar_one_or_none()

    async def find_default_role(self) -> Role | None:
        stmt = select_active(Role, Role.is_default.is_(True)).order_by(Role.created_at).limit(1)
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return result.scalar_one_or_none()

    async def find_system_role(self, name: str) -> Role | None:
        async with self._session_factory() as session:
            result = await session.execute(
                select_active(Role, Role.name == name, Role.role_type == RoleType.SYSTEM)
            )
            return result.scalar_one_or_none()

    async def create(
        self,
        *,
        name: str,
        description: str | None = None,
        role_type: RoleType = RoleType.CUSTOM,
        is_default: bool = False,
    ) -> Role:
        async with self._session_factory.begin() as session:
            taken = await session.execute(select(Role.id).where(Role.active(), Role.name == name))
            if taken.first() is not None:
                raise ConflictError(f"Role already exists: {name}")
            if is_default:
                await self._clear_default(session)
            role = Role(
                name=name, description=description, role_type=role_type, is_default=is_default
            )
            session.add(role)
        return role

    async def update(self, role_id: str, **fields: Any) -> Role:
        unknown = set(fields) - _UPDATABLE
        if unknown:
            raise ValueError(f"Cannot update role fields: {sorted(unknown)}")

        async with self._session_factory.begin() as session:
            role = (
                await session.execute(select_active(Role, Role.id == role_id))
            ).scalar_one_or_none()
            if role is None:
                raise NotFoundError("Role not found")

            new_name = fields.get("name")
            if new_name is not None and new_name != role.name:
                taken = await session.execute(
                    select(Role.id).where(Role.active(), Role.name == new_name, Role.id != role_id)
                )
                if taken.first() is not None:
                    raise ConflictError(f"Role name already in use: {new_name}")
            if fields.get("is_default"):
                await self._clear_default(session, exclude_id=role_id)

            for name, value in fields.items():
                setattr(role, name, value)
        return role

    async def delete(self, role_id: str) -> None:
        now = utcnow()
        async with self._session_factory.begin() as session:
            result = await session.execute(
                update(Role).where(Role.id == role_id, Role.active()).values(deleted_at=now)
            )
            if result.rowcount == 0:
                raise NotFoundError("Role not found")
            await session.execute(
                update(RolePrivilege)
                .where(RolePrivilege.role_id == role_id, RolePrivilege.active())
                .values(deleted_at=now)
            )
            await session.execute(
                update(UserRole)
                .where(UserRole.role_id == role_id, UserRole.active())
                .values(deleted_at=now)
            )

    async def find_many(
        self, *, skip: int = 0, take: int = 10, search: str | None = None
    ) -> tuple[list[Role], int]:
        criteria = []
        if search:
            criteria.append(or_(contains(Role.name, search), contains(Role.description, search)))

        async with self._session_factory() as session:
            roles = (
                await session.execute(
                    select_active(Role, *criteria)
                    .order_by(Role.created_at.desc())
                    .offset(skip)
                    .limit(take)
                )
            ).scalars().all()
            total = (await session.execute(count_active(Role, *criteria))).scalar_one()
        return list(roles), total

    async def assign_to_user(self, user_id: str, role_ids: Sequence[str]) -> None:
        async with self._session_factory.begin() as session:
            user = await session.execute(select(User.id).where(User.active(), User.id == user_id))
            if user.first() is None:
                raise NotFoundError("User not found")

            for role_id in role_ids:
                role = await session.execute(
                    select(Role.id).where(Role.active(), Role.id == role_id)
                )
                if role.first() is None:
                    raise NotFoundError(f"Role not found: {role_id}")
                existing = await session.execute(
                    select(UserRole.id).where(
                        UserRole.active(), UserRole.user_id == user_id, UserRole.role_id == role_id
                    )
                )
                if existing.first() is not None:
                    raise ConflictError(f"Role already assigned to user: {role_id}")
                session.add(UserRole(user_id=user_id, role_id=role_id))
                # Flush per row so a repeated id in *role_ids* is caught above.
                await session.flush()

    async def remove_from_user(self, user_id: str, role_id: str) -> None:
        async with self._session_factory.begin() as session:
            result = await session.execute(
                update(UserRole)
                .where(UserRole.user_id == user_id, UserRole.role_id == role_id, UserRole.active())
                .values(deleted_at=utcnow())
            )
            if result.rowcount == 0:
                raise NotFoundError("Role assignment not found")

    async def has_privilege(self, role_id: str, privilege_name: str) -> bool:
        stmt = (
            select(RolePrivilege.id)
            .join(Role, Role.id == RolePrivilege.role_id)
            .join(Privilege, Privilege.id == RolePrivilege.privilege_id)
            .where(
                RolePrivilege.role_id == role_id,
                RolePrivilege.active(),
                Role.active(),
                Privilege.privilege_name == privilege_name,
                Privilege.active(),
            )
            .limit(1)
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return result.first() is not None

    async def get_user_count(self, role_id: str) -> int:
        async with self._session_factory() as session:
            result = await session.execute(
                count_active(UserRole, UserRole.role_id == role_id)
            )
            return result.scalar_one()

    # ── Private helpers ──────────────────────────────────

    @staticmethod
    async def _clear_default(session, exclude_id: str | None = None) -> None:
        """Keep at most one default role: unset the flag everywhere else."""
        criteria = [Role.active(), Role.is_default.is_(True)]
        if exclude_id:
            criteria.append(Role.id != exclude_id)
        await session.execute(update(Role).where(*criteria).values(is_default=False))
