"""SQLAlchemy User and UserRole models."""

import enum

from sqlalchemy import Boolean, Enum, ForeignKey, Index, String, text
from sqlalchemy.orm import Mapped, mapped_column

from authcore.models.base import Base, IdMixin, SoftDeleteMixin, TimestampMixin


class VerificationStatus(str, enum.Enum):
    INITIAL_REGISTERED = "INITIAL_REGISTERED"
    PARTIALLY_VERIFIED = "PARTIALLY_VERIFIED"
    VERIFIED = "VERIFIED"

    @classmethod
    def derive(cls, email_verified: bool, phone_verified: bool) -> "VerificationStatus":
        """Status is always computed from the two flags, never set directly."""
        if email_verified and phone_verified:
            return cls.VERIFIED
        if email_verified or phone_verified:
            return cls.PARTIALLY_VERIFIED
        return cls.INITIAL_REGISTERED


class User(IdMixin, TimestampMixin, SoftDeleteMixin, Base):
    """A registered account.

    ``default_role_id`` is the *active* role used as authorization context;
    role membership itself lives in :class:`UserRole`.  ``password`` holds an
    argon2id hash and must never be logged or returned to callers.
    """

    __tablename__ = "users"

    full_name: Mapped[str] = mapped_column(String(256), nullable=False)
    email: Mapped[str] = mapped_column(String(256), nullable=False)
    phone_number: Mapped[str] = mapped_column(String(32), nullable=False)
    password: Mapped[str] = mapped_column(String(256), nullable=False)
    position: Mapped[str | None] = mapped_column(String(128), nullable=True)
    default_role_id: Mapped[str | None] = mapped_column(
        ForeignKey("roles.id"), nullable=True
    )
    is_email_verified: Mapped[bool] = mapped_column(Boolean, default=False)
    is_phone_verified: Mapped[bool] = mapped_column(Boolean, default=False)
    verification_status: Mapped[VerificationStatus] = mapped_column(
        Enum(VerificationStatus, native_enum=False, length=32),
        default=VerificationStatus.INITIAL_REGISTERED,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    __table_args__ = (
        Index(
            "uq_users_email_active",
            "email",
            unique=True,
            sqlite_where=text("deleted_at IS NULL"),
            postgresql_where=text("deleted_at IS NULL"),
        ),
        Index(
            "uq_users_phone_active",
            "phone_number",
            unique=True,
            sqlite_where=text("deleted_at IS NULL"),
            postgresql_where=text("deleted_at IS NULL"),
        ),
        Index("ix_users_default_role_id", "default_role_id"),
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r}>"


class UserRole(IdMixin, SoftDeleteMixin, Base):
    """Role membership of a user (distinct from the active default role)."""

    __tablename__ = "user_roles"

    user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False)
    role_id: Mapped[str] = mapped_column(ForeignKey("roles.id"), nullable=False)

    __table_args__ = (
        Index(
            "uq_user_roles_active",
            "user_id",
            "role_id",
            unique=True,
            sqlite_where=text("deleted_at IS NULL"),
            postgresql_where=text("deleted_at IS NULL"),
        ),
    )
