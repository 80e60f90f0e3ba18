"""Privilege repository — the privilege catalog and role→privilege edges."""

from __future__ import annotations

from typing import Any

from sqlalchemy import or_, select, update

from authcore.database.interfaces import PrivilegeRepository
from authcore.database.repositories.base import SqlRepository, contains, count_active, select_active
from authcore.errors import ConflictError, NotFoundError
from authcore.models.base import utcnow
from authcore.models.role import Privilege, PrivilegeGroup, Role, RolePrivilege

_UPDATABLE = {"privilege_name", "description", "privilege_group"}


class SqlPrivilegeRepository(SqlRepository, PrivilegeRepository):
    """Encapsulates all database queries related to privileges."""

    async def find_by_id(self, privilege_id: str) -> Privilege | None:
        async with self._session_factory() as session:
            result = await session.execute(select_active(Privilege, Privilege.id == privilege_id))
            return result.scalar_one_or_none()

    async def find_by_name(self, name: str) -> Privilege | None:
        async with self._session_factory() as session:
            result = await session.execute(
                select_active(Privilege, Privilege.privilege_name == name)
            )
            return result.scalar_one_or_none()

    async def create(
        self,
        *,
        privilege_name: str,
        privilege_group: PrivilegeGroup,
        description: str | None = None,
    ) -> Privilege:
        async with self._session_factory.begin() as session:
            taken = await session.execute(
                select(Privilege.id).where(
                    Privilege.active(), Privilege.privilege_name == privilege_name
                )
            )
            if taken.first() is not None:
                raise ConflictError(f"Privilege already exists: {privilege_name}")
            privilege = Privilege(
                privilege_name=privilege_name,
                privilege_group=privilege_group,
                description=description,
            )
            session.add(privilege)
        return privilege

    async def update(self, privilege_id: str, **fields: Any) -> Privilege:
        unknown = set(fields) - _UPDATABLE
        if unknown:
            raise ValueError(f"Cannot update privilege fields: {sorted(unknown)}")

        async with self._session_factory.begin() as session:
            privilege = (
                await session.execute(select_active(Privilege, Privilege.id == privilege_id))
            ).scalar_one_or_none()
            if privilege is None:
                raise NotFoundError("Privilege not found")

            new_name = fields.get("privilege_name")
            if new_name is not None and new_name != privilege.privilege_name:
                taken = await session.execute(
                    select(Privilege.id).where(
                        Privilege.active(),
                        Privilege.privilege_name == new_name,
                        Privilege.id != privilege_id,
                    )
                )
                if taken.first() is not None:
                    raise ConflictError(f"Privilege name already in use: {new_name}")

            for name, value in fields.items():
                setattr(privilege, name, value)
        return privilege

    async def delete(self, privilege_id: str) -> None:
        now = utcnow()
        async with self._session_factory.begin() as session:
            result = await session.execute(
                update(Privilege)
                .where(Privilege.id == privilege_id, Privilege.active())
                .values(deleted_at=now)
            )
            if result.rowcount == 0:
                raise NotFoundError("Privilege not found")
            await session.execute(
                update(RolePrivilege)
                .where(RolePrivilege.privilege_id == privilege_id, RolePrivilege.active())
                .values(deleted_at=now)
            )

    async def find_many(
        self,
        *,
        skip: int = 0,
        take: int = 10,
        search: str | None = None,
        group: PrivilegeGroup | None = None,
    ) -> tuple[list[Privilege], int]:
        criteria = []
        if search:
            criteria.append(
                or_(
                    contains(Privilege.privilege_name, search),
                    contains(Privilege.description, search),
                )
            )
        if group is not None:
            criteria.append(Privilege.privilege_group == group)

        async with self._session_factory() as session:
            privileges = (
                await session.execute(
                    select_active(Privilege, *criteria)
                    .order_by(Privilege.created_at.desc())
                    .offset(skip)
                    .limit(take)
                )
            ).scalars().all()
            total = (await session.execute(count_active(Privilege, *criteria))).scalar_one()
        return list(privileges), total

    async def assign_to_role(self, role_id: str, privilege_id: str) -> None:
        async with self._session_factory.begin() as session:
            role = await session.execute(select(Role.id).where(Role.active(), Role.id == role_id))
            privilege = await session.execute(
                select(Privilege.id).where(Privilege.active(), Privilege.id == privilege_id)
            )
            if role.first() is None or privilege.first() is None:
                raise NotFoundError("Role or privilege not found")

            existing = await session.execute(
                select(RolePrivilege.id).where(
                    RolePrivilege.active(),
                    RolePrivilege.role_id == role_id,
                    RolePrivilege.privilege_id == privilege_id,
                )
            )
            if existing.first() is not None:
                raise ConflictError("Privilege already assigned to role")
            session.add(RolePrivilege(role_id=role_id, privilege_id=privilege_id))

    async def remove_from_role(self, role_id: str, privilege_id: str) -> None:
        async with self._session_factory.begin() as session:
            result = await session.execute(
                update(RolePrivilege)
                .where(
                    RolePrivilege.role_id == role_id,
                    RolePrivilege.privilege_id == privilege_id,
                    RolePrivilege.active(),
                )
                .values(deleted_at=utcnow())
            )
            if result.rowcount == 0:
                raise NotFoundError("Privilege assignment not found")

    async def find_by_role_id(self, role_id: str) -> list[Privilege]:
        stmt = (
            select_active(Privilege)
            .join(RolePrivilege, RolePrivilege.privilege_id == Privilege.id)
            .where(RolePrivilege.role_id == role_id, RolePrivilege.active())
            .order_by(Privilege.privilege_name)
        )
        async with self._session_factory() as session:
            return list((await session.execute(stmt)).scalars().all())
