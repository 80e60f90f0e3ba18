"""Value objects returned by the services.

These are what leaves the core: ORM rows stay inside, and the password
hash never appears in any of them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from authcore.models.user import User
from authcore.services.token_manager import TokenPair

T = TypeVar("T")


@dataclass
class UserView:
    id: str
    full_name: str
    email: str
    phone_number: str
    position: str | None
    default_role_id: str | None
    is_active: bool
    verification_status: str
    is_email_verified: bool
    is_phone_verified: bool

    @classmethod
    def from_model(cls, user: User) -> "UserView":
        return cls(
            id=user.id,
            full_name=user.full_name,
            email=user.email,
            phone_number=user.phone_number,
            position=user.position,
            default_role_id=user.default_role_id,
            is_active=user.is_active,
            verification_status=user.verification_status.value,
            is_email_verified=user.is_email_verified,
            is_phone_verified=user.is_phone_verified,
        )


@dataclass
class AuthResult:
    """What register / login / refresh hand back: the account and a token pair."""

    user: UserView
    tokens: TokenPair


@dataclass
class RoleSwitchResult:
    user: UserView
    access_token: str


@dataclass
class PrivilegeCheck:
    granted: bool
    missing_privileges: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"granted": self.granted}
        if self.missing_privileges:
            body["missing_privileges"] = self.missing_privileges
        return body


@dataclass
class Page(Generic[T]):
    """One page of a paginated listing (``page`` is 1-based)."""

    items: list[T]
    total: int
    page: int
    limit: int

    @classmethod
    def build(cls, items: list[T], total: int, skip: int, take: int) -> "Page[T]":
        return cls(items=items, total=total, page=skip // take + 1 if take else 1, limit=take)


@dataclass
class Profile:
    id: str
    full_name: str
    email: str
    phone_number: str
    position: str | None
    is_email_verified: bool
    is_phone_verified: bool
    roles: list[str]
    default_role_id: str | None = None
