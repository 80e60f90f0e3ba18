"""Blacklisted-token repository — the revocation list consulted on refresh."""

from __future__ import annotations

from datetime import timedelta

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from authcore.database.interfaces import BlacklistedTokenRepository
from authcore.database.repositories.base import SqlRepository
from authcore.models.base import utcnow
from authcore.models.token import BlacklistedToken

DEFAULT_REVOCATION_TTL = 24 * 60 * 60


class SqlBlacklistedTokenRepository(SqlRepository, BlacklistedTokenRepository):
    """Revocation entries live for a fixed horizon from the moment of revocation."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        ttl_seconds: int = DEFAULT_REVOCATION_TTL,
    ) -> None:
        super().__init__(session_factory)
        self._ttl = timedelta(seconds=ttl_seconds)

    async def add(self, token: str, user_id: str) -> None:
        horizon = utcnow() + self._ttl
        try:
            async with self._session_factory.begin() as session:
                existing = (
                    await session.execute(
                        select(BlacklistedToken).where(BlacklistedToken.token == token)
                    )
                ).scalar_one_or_none()
                if existing is not None:
                    # Re-revoking restarts the horizon, covering entries not yet swept.
                    existing.expires_at = horizon
                    return
                session.add(BlacklistedToken(token=token, user_id=user_id, expires_at=horizon))
        except IntegrityError:
            # A concurrent call revoked the same token first.
            return

    async def is_blacklisted(self, token: str) -> bool:
        async with self._session_factory() as session:
            result = await session.execute(
                select(BlacklistedToken.id).where(
                    BlacklistedToken.token == token, BlacklistedToken.expires_at > utcnow()
                )
            )
            return result.first() is not None

    async def cleanup(self) -> int:
        async with self._session_factory.begin() as session:
            result = await session.execute(
                delete(BlacklistedToken)
                .where(BlacklistedToken.expires_at < utcnow())
                .execution_options(synchronize_session=False)
            )
        return result.rowcount
