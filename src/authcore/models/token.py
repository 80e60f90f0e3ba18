"""SQLAlchemy BlacklistedToken model."""

from datetime import datetime

from sqlalchemy import DateTime, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from authcore.models.base import Base, IdMixin, utcnow


class BlacklistedToken(IdMixin, Base):
    """A revoked token.

    ``expires_at`` is the revocation horizon, independent of the token's own
    ``exp`` claim.  Looked up by ``token`` on every refresh, hence the unique index.
    """

    __tablename__ = "blacklisted_tokens"

    token: Mapped[str] = mapped_column(Text, nullable=False)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    __table_args__ = (
        Index("uq_blacklisted_tokens_token", "token", unique=True),
        Index("ix_blacklisted_tokens_expires_at", "expires_at"),
    )
