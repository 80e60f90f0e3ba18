"""User service — profile reads/updates and account administration."""

from __future__ import annotations

import logging

from authcore.database.interfaces import UserRepository
from authcore.errors import DuplicateEmailError, DuplicatePhoneError, UserNotFoundError, guard
from authcore.services.types import Page, Profile, UserView

logger = logging.getLogger(__name__)


class UserService:
    def __init__(self, users: UserRepository) -> None:
        self._users = users

    @guard("Failed to get profile")
    async def get_profile(self, user_id: str) -> Profile:
        found = await self._users.find_by_id_with_roles(user_id)
        if found is None:
            raise UserNotFoundError()
        user = found.user
        return Profile(
            id=user.id,
            full_name=user.full_name,
            email=user.email,
            phone_number=user.phone_number,
            position=user.position,
            is_email_verified=user.is_email_verified,
            is_phone_verified=user.is_phone_verified,
            roles=[role.name for role in found.roles],
            default_role_id=user.default_role_id,
        )

    @guard("Failed to update profile")
    async def update_profile(
        self,
        user_id: str,
        *,
        full_name: str | None = None,
        position: str | None = None,
    ) -> Profile:
        fields = {}
        if full_name is not None:
            fields["full_name"] = full_name
        if position is not None:
            fields["position"] = position
        if fields:
            await self._users.update(user_id, **fields)
        return await self.get_profile(user_id)

    @guard("Failed to update user")
    async def update_user(
        self,
        user_id: str,
        *,
        full_name: str | None = None,
        email: str | None = None,
        phone_number: str | None = None,
        position: str | None = None,
        is_active: bool | None = None,
    ) -> UserView:
        """Administrative update.

        A changed email or phone number must not belong to another active user,
        and loses its verified flag until it is confirmed again.
        """
        user = await self._users.find_by_id(user_id)
        if user is None:
            raise UserNotFoundError()

        fields: dict = {}
        if full_name is not None:
            fields["full_name"] = full_name
        if position is not None:
            fields["position"] = position
        if is_active is not None:
            fields["is_active"] = is_active

        if email is not None and email != user.email:
            existing = await self._users.find_by_email(email)
            if existing is not None and existing.id != user_id:
                raise DuplicateEmailError()
            fields["email"] = email
            fields["is_email_verified"] = False

        if phone_number is not None and phone_number != user.phone_number:
            existing = await self._users.find_by_phone_number(phone_number)
            if existing is not None and existing.id != user_id:
                raise DuplicatePhoneError()
            fields["phone_number"] = phone_number
            fields["is_phone_verified"] = False

        if not fields:
            return UserView.from_model(user)
        updated = await self._users.update(user_id, **fields)
        logger.info("User %s updated (%s)", user_id, ", ".join(sorted(fields)))
        return UserView.from_model(updated)

    @guard("Failed to delete user")
    async def delete_user(self, user_id: str) -> None:
        await self._users.delete(user_id)
        logger.info("User %s deleted", user_id)

    @guard("Failed to list users")
    async def list_users(
        self, *, skip: int = 0, take: int = 10, search: str | None = None
    ) -> Page[UserView]:
        users, total = await self._users.find_many(skip=skip, take=take, search=search)
        return Page.build([UserView.from_model(u) for u in users], total, skip, take)
