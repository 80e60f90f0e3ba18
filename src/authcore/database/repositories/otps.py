"""OTP repository — issuing, throttling and consuming one-time codes."""

from __future__ import annotations

from datetime import datetime, timedelta

from sqlalchemy import func, select, update

from authcore.database.interfaces import OtpRepository
from authcore.database.repositories.base import SqlRepository
from authcore.errors import DailyLimitExceededError
from authcore.models.base import utcnow
from authcore.models.otp import Otp, OtpPurpose, OtpType


def start_of_day(moment: datetime) -> datetime:
    """Midnight (UTC) of the day containing *moment*; the daily quota resets here."""
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


class SqlOtpRepository(SqlRepository, OtpRepository):
    """Encapsulates all database queries related to OTP records."""

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
        now = utcnow()
        day = start_of_day(now)
        async with self._session_factory.begin() as session:
            count = await self._count_since(session, user_id, type, day)
            if count >= daily_limit:
                raise DailyLimitExceededError("Daily OTP limit reached")
            if supersede:
                await self._invalidate(session, user_id, purpose, identifier)
            otp = Otp(
                code=code,
                user_id=user_id,
                identifier=identifier,
                type=type,
                purpose=purpose,
                expires_at=expires_at,
                daily_count=count + 1,
                daily_count_reset=day + timedelta(days=1),
                created_at=now,
            )
            session.add(otp)
        return otp

    async def verify(
        self, code: str, identifier: str, purpose: OtpPurpose, max_attempts: int
    ) -> Otp | None:
        now = utcnow()
        async with self._session_factory.begin() as session:
            otp = (
                await session.execute(
                    select(Otp)
                    .where(
                        Otp.code == code,
                        Otp.identifier == identifier,
                        Otp.purpose == purpose,
                        Otp.used.is_(False),
                        Otp.expires_at > now,
                        Otp.attempts < max_attempts,
                    )
                    .order_by(Otp.created_at.desc())
                    .limit(1)
                )
            ).scalar_one_or_none()

            if otp is None:
                # Every miss counts against all live codes for this address.
                await session.execute(
                    update(Otp)
                    .where(
                        Otp.identifier == identifier,
                        Otp.purpose == purpose,
                        Otp.used.is_(False),
                        Otp.expires_at > now,
                    )
                    .values(attempts=Otp.attempts + 1)
                    .execution_options(synchronize_session=False)
                )
                return None

            consumed = await session.execute(
                update(Otp).where(Otp.id == otp.id, Otp.used.is_(False)).values(used=True)
            )
            if consumed.rowcount == 0:
                return None
        return otp

    async def get_daily_count(self, user_id: str, type: OtpType) -> int:
        async with self._session_factory() as session:
            return await self._count_since(session, user_id, type, start_of_day(utcnow()))

    async def invalidate_existing(
        self, user_id: str, purpose: OtpPurpose, identifier: str | None = None
    ) -> int:
        async with self._session_factory.begin() as session:
            return await self._invalidate(session, user_id, purpose, identifier)

    @staticmethod
    async def _invalidate(
        session, user_id: str, purpose: OtpPurpose, identifier: str | None
    ) -> int:
        criteria = [Otp.user_id == user_id, Otp.purpose == purpose, Otp.used.is_(False)]
        if identifier is not None:
            criteria.append(Otp.identifier == identifier)
        result = await session.execute(
            update(Otp)
            .where(*criteria)
            .values(used=True)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    @staticmethod
    async def _count_since(session, user_id: str, type: OtpType, since: datetime) -> int:
        result = await session.execute(
            select(func.count())
            .select_from(Otp)
            .where(Otp.user_id == user_id, Otp.type == type, Otp.created_at >= since)
        )
        return result.scalar_one()
