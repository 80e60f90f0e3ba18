"""Repository contracts — persistence-agnostic interfaces consumed by the services.

Every mutation that touches a uniqueness-constrained field re-checks that
constraint inside its own transaction, independently of any check the
calling service already made.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from authcore.models.otp import Otp, OtpPurpose, OtpType
from authcore.models.role import Privilege, PrivilegeGroup, Role, RoleType
from authcore.models.user import User


@dataclass
class UserWithRoles:
    """A user together with the active roles it is a member of."""

    user: User
    roles: list[Role] = field(default_factory=list)

    @property
    def role_ids(self) -> set[str]:
        return {r.id for r in self.roles}


class UserRepository(ABC):
    @abstractmethod
    async def find_by_id(self, user_id: str) -> User | None: ...

    @abstractmethod
    async def find_by_email(self, email: str) -> User | None: ...

    @abstractmethod
    async def find_by_phone_number(self, phone_number: str) -> User | None: ...

    @abstractmethod
    async def find_by_identifier(self, identifier: str) -> User | None:
        """Match *identifier* against email OR phone number; first match wins."""

    @abstractmethod
    async def find_by_id_with_roles(self, user_id: str) -> UserWithRoles | None: ...

    @abstractmethod
    async def create(
        self,
        *,
        full_name: str,
        email: str,
        phone_number: str,
        password_hash: str,
        default_role_id: str,
    ) -> User:
        """Insert a user and its membership of *default_role_id* atomically.

        Raises ``DuplicateEmailError`` / ``DuplicatePhoneError`` when an active
        user already holds either identifier.
        """

    @abstractmethod
    async def update(self, user_id: str, **fields: Any) -> User:
        """Update columns of an active user; re-checks email/phone uniqueness."""

    @abstractmethod
    async def delete(self, user_id: str) -> None:
        """Soft-delete the user and every role membership it holds."""

    @abstractmethod
    async def is_first_user(self) -> bool:
        """True when no user row has ever been created (soft-deleted ones count)."""

    @abstractmethod
    async def find_many(
        self,
        *,
        skip: int = 0,
        take: int = 10,
        search: str | None = None,
        default_role_id: str | None = None,
    ) -> tuple[list[User], int]: ...


class RoleRepository(ABC):
    @abstractmethod
    async def find_by_id(self, role_id: str) -> Role | None: ...

    @abstractmethod
    async def find_by_name(self, name: str) -> Role | None: ...

    @abstractmethod
    async def find_default_role(self) -> Role | None: ...

    @abstractmethod
    async def find_system_role(self, name: str) -> Role | None: ...

    @abstractmethod
    async def create(
        self,
        *,
        name: str,
        description: str | None = None,
        role_type: RoleType = RoleType.CUSTOM,
        is_default: bool = False,
    ) -> Role: ...

    @abstractmethod
    async def update(self, role_id: str, **fields: Any) -> Role: ...

    @abstractmethod
    async def delete(self, role_id: str) -> None:
        """Soft-delete the role together with its privilege and user edges."""

    @abstractmethod
    async def find_many(
        self, *, skip: int = 0, take: int = 10, search: str | None = None
    ) -> tuple[list[Role], int]: ...

    @abstractmethod
    async def assign_to_user(self, user_id: str, role_ids: Sequence[str]) -> None:
        """Add memberships all-or-nothing; an already active pair is a conflict."""

    @abstractmethod
    async def remove_from_user(self, user_id: str, role_id: str) -> None: ...

    @abstractmethod
    async def has_privilege(self, role_id: str, privilege_name: str) -> bool: ...

    @abstractmethod
    async def get_user_count(self, role_id: str) -> int: ...


class PrivilegeRepository(ABC):
    @abstractmethod
    async def find_by_id(self, privilege_id: str) -> Privilege | None: ...

    @abstractmethod
    async def find_by_name(self, name: str) -> Privilege | None: ...

    @abstractmethod
    async def create(
        self,
        *,
        privilege_name: str,
        privilege_group: PrivilegeGroup,
        description: str | None = None,
    ) -> Privilege: ...

    @abstractmethod
    async def update(self, privilege_id: str, **fields: Any) -> Privilege: ...

    @abstractmethod
    async def delete(self, privilege_id: str) -> None: ...

    @abstractmethod
    async def find_many(
        self,
        *,
        skip: int = 0,
        take: int = 10,
        search: str | None = None,
        group: PrivilegeGroup | None = None,
    ) -> tuple[list[Privilege], int]: ...

    @abstractmethod
    async def assign_to_role(self, role_id: str, privilege_id: str) -> None: ...

    @abstractmethod
    async def remove_from_role(self, role_id: str, privilege_id: str) -> None:
        """Soft-delete the active edge; raises ``NotFoundError`` when none exists."""

    @abstractmethod
    async def find_by_role_id(self, role_id: str) -> list[Privilege]: ...


class OtpRepository(ABC):
    @abstractmethod
    async def create(
        self,
        *,
        code: str,
        user_id: str,
        identifier: str,
        type: OtpType,
        purpose: OtpPurpose,
        expires_at: datetime,
        daily_limit: int,
        supersede: bool = False,
    ) -> Otp:
        """Count today's codes and insert in one transaction.

        Raises ``DailyLimitExceededError`` once the count reaches *daily_limit*,
        before anything is written.  With *supersede*, unused codes for the same
        (user, identifier, purpose) are marked used in that same transaction.
        """

    @abstractmethod
    async def verify(
        self, code: str, identifier: str, purpose: OtpPurpose, max_attempts: int
    ) -> Otp | None: ...

    @abstractmethod
    async def get_daily_count(self, user_id: str, type: OtpType) -> int: ...

    @abstractmethod
    async def invalidate_existing(
        self, user_id: str, purpose: OtpPurpose, identifier: str | None = None
    ) -> int:
        """Mark unused codes used; limited to *identifier* when one is given."""


class BlacklistedTokenRepository(ABC):
    @abstractmethod
    async def add(self, token: str, user_id: str) -> None:
        """Record *token* as revoked; adding an already revoked token is a no-op."""

    @abstractmethod
    async def is_blacklisted(self, token: str) -> bool: ...

    @abstractmethod
    async def cleanup(self) -> int:
        """Purge entries past their revocation horizon; returns how many."""
