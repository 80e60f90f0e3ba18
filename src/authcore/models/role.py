"""SQLAlchemy Role, Privilege and RolePrivilege models."""

import enum

from sqlalchemy import Boolean, Enum, ForeignKey, Index, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from authcore.models.base import Base, IdMixin, SoftDeleteMixin, TimestampMixin


class RoleType(str, enum.Enum):
    SYSTEM = "SYSTEM"
    CUSTOM = "CUSTOM"


class SystemRole(str, enum.Enum):
    SUPER_ADMIN = "SUPER_ADMIN"
    ADMIN = "ADMIN"
    USER = "USER"


class PrivilegeGroup(str, enum.Enum):
    USER_MANAGEMENT = "USER_MANAGEMENT"
    PROFILE = "PROFILE"
    ROLE_MANAGEMENT = "ROLE_MANAGEMENT"
    SETTINGS = "SETTINGS"
    SYSTEM = "SYSTEM"


class Role(IdMixin, TimestampMixin, SoftDeleteMixin, Base):
    """A named bundle of privileges.

    ``role_type`` is fixed at creation; SYSTEM roles are seeded and can be
    neither updated nor deleted.  At most one active role has ``is_default``.
    """

    __tablename__ = "roles"

    name: Mapped[str] = mapped_column(String(64), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    role_type: Mapped[RoleType] = mapped_column(
        Enum(RoleType, native_enum=False, length=16), default=RoleType.CUSTOM
    )
    is_default: Mapped[bool] = mapped_column(Boolean, default=False)

    __table_args__ = (
        Index(
            "uq_roles_name_active",
            "name",
            unique=True,
            sqlite_where=text("deleted_at IS NULL"),
            postgresql_where=text("deleted_at IS NULL"),
        ),
    )

    @property
    def is_system(self) -> bool:
        return self.role_type == RoleType.SYSTEM

    def __repr__(self) -> str:
        return f"<Role id={self.id} name={self.name!r} type={self.role_type.value}>"


class Privilege(IdMixin, TimestampMixin, SoftDeleteMixin, Base):
    """A single grantable action, named ``resource:action``."""

    __tablename__ = "privileges"

    privilege_name: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    privilege_group: Mapped[PrivilegeGroup] = mapped_column(
        Enum(PrivilegeGroup, native_enum=False, length=32), nullable=False
    )

    __table_args__ = (
        Index(
            "uq_privileges_name_active",
            "privilege_name",
            unique=True,
            sqlite_where=text("deleted_at IS NULL"),
            postgresql_where=text("deleted_at IS NULL"),
        ),
    )

    def __repr__(self) -> str:
        return f"<Privilege id={self.id} name={self.privilege_name!r}>"


class RolePrivilege(IdMixin, SoftDeleteMixin, Base):
    """The only authorization-relevant edge: role R grants privilege P."""

    __tablename__ = "role_privileges"

    role_id: Mapped[str] = mapped_column(ForeignKey("roles.id"), nullable=False)
    privilege_id: Mapped[str] = mapped_column(ForeignKey("privileges.id"), nullable=False)

    __table_args__ = (
        Index(
            "uq_role_privileges_active",
            "role_id",
            "privilege_id",
            unique=True,
            sqlite_where=text("deleted_at IS NULL"),
            postgresql_where=text("deleted_at IS NULL"),
        ),
    )
