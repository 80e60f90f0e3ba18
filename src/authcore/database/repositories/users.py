"""User repository — data access layer for accounts and role membership."""

from __future__ import annotations

from typing import Any

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError

from authcore.database.interfaces import UserRepository, UserWithRoles
from authcore.database.repositories.base import SqlRepository, contains, count_active, select_active
from authcore.errors import DuplicateEmailError, DuplicatePhoneError, UserNotFoundError
from authcore.models.base import utcnow
from authcore.models.role import Role
from authcore.models.user import User, UserRole, VerificationStatus

_UPDATABLE = {
    "full_name",
    "email",
    "phone_number",
    "password",
    "position",
    "default_role_id",
    "is_email_verified",
    "is_phone_verified",
    "is_active",
}


def _duplicate_error(exc: IntegrityError) -> DuplicateEmailError | DuplicatePhoneError | None:
    """Map a unique-index violation on users to the matching duplicate error."""
    message = str(exc.orig).lower()
    if "phone" in message:
        return DuplicatePhoneError()
    if "email" in message:
        return DuplicateEmailError()
    return None


class SqlUserRepository(SqlRepository, UserRepository):
    """Encapsulates all database queries related to users."""

    async def find_by_id(self, user_id: str) -> User | None:
        async with self._session_factory() as session:
            result = await session.execute(select_active(User, User.id == user_id))
            return result.scalar_one_or_none()

    async def find_by_email(self, email: str) -> User | None:
        async with self._session_factory() as session:
            result = await session.execute(select_active(User, User.email == email))
            return result.scalar_one_or_none()

    async def find_by_phone_number(self, phone_number: str) -> User | None:
        async with self._session_factory() as session:
            result = await session.execute(
                select_active(User, User.phone_number == phone_number)
            )
            return result.scalar_one_or_none()

    async def find_by_identifier(self, identifier: str) -> User | None:
        stmt = (
            select_active(User, or_(User.email == identifier, User.phone_number == identifier))
            .order_by(User.created_at)
            .limit(1)
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return result.scalar_one_or_none()

    async def find_by_id_with_roles(self, user_id: str) -> UserWithRoles | None:
        async with self._session_factory() as session:
            user = (
                await session.execute(select_active(User, User.id == user_id))
            ).scalar_one_or_none()
            if user is None:
                return None
            roles = (
                await session.execute(
                    select_active(Role)
                    .join(UserRole, UserRole.role_id == Role.id)
                    .where(UserRole.user_id == user_id, UserRole.active())
                    .order_by(Role.name)
                )
            ).scalars().all()
        return UserWithRoles(user=user, roles=list(roles))

    async def create(
        self,
        *,
        full_name: str,
        email: str,
        phone_number: str,
        password_hash: str,
        default_role_id: str,
    ) -> User:
        try:
            async with self._session_factory.begin() as session:
                await self._check_unique(session, email=email, phone_number=phone_number)
                user = User(
                    full_name=full_name,
                    email=email,
                    phone_number=phone_number,
                    password=password_hash,
                    default_role_id=default_role_id,
                    verification_status=VerificationStatus.INITIAL_REGISTERED,
                )
                session.add(user)
                await session.flush()
                session.add(UserRole(user_id=user.id, role_id=default_role_id))
        except IntegrityError as exc:
            duplicate = _duplicate_error(exc)
            if duplicate is None:
                raise
            raise duplicate from exc
        return user

    async def update(self, user_id: str, **fields: Any) -> User:
        unknown = set(fields) - _UPDATABLE
        if unknown:
            raise ValueError(f"Cannot update user fields: {sorted(unknown)}")

        try:
            async with self._session_factory.begin() as session:
                user = (
                    await session.execute(select_active(User, User.id == user_id))
                ).scalar_one_or_none()
                if user is None:
                    raise UserNotFoundError()

                await self._check_unique(
                    session,
                    email=fields.get("email"),
                    phone_number=fields.get("phone_number"),
                    exclude_id=user_id,
                )
                for name, value in fields.items():
                    setattr(user, name, value)
                user.verification_status = VerificationStatus.derive(
                    user.is_email_verified, user.is_phone_verified
                )
        except IntegrityError as exc:
            duplicate = _duplicate_error(exc)
            if duplicate is None:
                raise
            raise duplicate from exc
        return user

    async def delete(self, user_id: str) -> None:
        now = utcnow()
        async with self._session_factory.begin() as session:
            result = await session.execute(
                update(User)
                .where(User.id == user_id, User.active())
                .values(deleted_at=now, is_active=False)
            )
            if result.rowcount == 0:
                raise UserNotFoundError()
            await session.execute(
                update(UserRole)
                .where(UserRole.user_id == user_id, UserRole.active())
                .values(deleted_at=now)
            )

    async def is_first_user(self) -> bool:
        async with self._session_factory() as session:
            total = (await session.execute(select(func.count()).select_from(User))).scalar_one()
        return total == 0

    async def find_many(
        self,
        *,
        skip: int = 0,
        take: int = 10,
        search: str | None = None,
        default_role_id: str | None = None,
    ) -> tuple[list[User], int]:
        criteria = []
        if search:
            criteria.append(
                or_(
                    contains(User.full_name, search),
                    contains(User.email, search),
                    contains(User.phone_number, search),
                )
            )
        if default_role_id is not None:
            criteria.append(User.default_role_id == default_role_id)

        async with self._session_factory() as session:
            users = (
                await session.execute(
                    select_active(User, *criteria)
                    .order_by(User.created_at.desc())
                    .offset(skip)
                    .limit(take)
                )
            ).scalars().all()
            total = (await session.execute(count_active(User, *criteria))).scalar_one()
        return list(users), total

    # ── Private helpers ──────────────────────────────────

    @staticmethod
    async def _check_unique(
        session,
        *,
        email: str | None,
        phone_number: str | None,
        exclude_id: str | None = None,
    ) -> None:
        """Raise if an active user other than *exclude_id* already holds either identifier."""
        exclude = [User.id != exclude_id] if exclude_id else []
        if email is not None:
            taken = await session.execute(
                select(User.id).where(User.active(), User.email == email, *exclude)
            )
            if taken.first() is not None:
                raise DuplicateEmailError()
        if phone_number is not None:
            taken = await session.execute(
                select(User.id).where(User.active(), User.phone_number == phone_number, *exclude)
            )
            if taken.first() is not None:
                raise DuplicatePhoneError()
