"""SQLAlchemy Otp model."""

import enum
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from authcore.models.base import Base, IdMixin, utcnow


class OtpType(str, enum.Enum):
    EMAIL = "EMAIL"
    WHATSAPP = "WHATSAPP"

    @classmethod
    def for_identifier(cls, identifier: str) -> "OtpType":
        return cls.EMAIL if "@" in identifier else cls.WHATSAPP


class OtpPurpose(str, enum.Enum):
    REGISTRATION = "REGISTRATION"
    PASSWORD_RESET = "PASSWORD_RESET"
    LOGIN = "LOGIN"
    CHANGE_EMAIL = "CHANGE_EMAIL"
    CHANGE_PHONE = "CHANGE_PHONE"


class Otp(IdMixin, Base):
    """A one-time code addressed to one identifier for one purpose.

    Terminal states: ``used`` (verified), past ``expires_at`` (expired), or
    ``attempts`` at the configured maximum (exhausted).
    """

    __tablename__ = "otps"

    code: Mapped[str] = mapped_column(String(6), nullable=False)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False)
    identifier: Mapped[str] = mapped_column(String(256), nullable=False)
    type: Mapped[OtpType] = mapped_column(Enum(OtpType, native_enum=False, length=16))
    purpose: Mapped[OtpPurpose] = mapped_column(Enum(OtpPurpose, native_enum=False, length=32))
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    used: Mapped[bool] = mapped_column(Boolean, default=False)
    attempts: Mapped[int] = mapped_column(Integer, default=0)
    daily_count: Mapped[int] = mapped_column(Integer, default=1)
    daily_count_reset: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    __table_args__ = (
        Index("ix_otps_identifier_purpose", "identifier", "purpose", "used"),
        Index("ix_otps_user_type_created", "user_id", "type", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Otp id={self.id} purpose={self.purpose.value} used={self.used}>"
