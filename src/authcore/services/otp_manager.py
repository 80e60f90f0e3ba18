"""OTP manager — generates, rate-limits and verifies one-time codes.

A code is scoped to (identifier, purpose), not to the user, so a code
issued for one purpose can never be replayed for another.  Each user may
request at most ``otp_daily_limit`` codes per channel per UTC day, and each
live code tolerates ``otp_max_attempts`` wrong guesses.
"""

from __future__ import annotations

import hashlib
import logging
import secrets
from datetime import timedelta

from authcore.database.interfaces import OtpRepository
from authcore.errors import DailyLimitExceededError, InvalidPurposeError
from authcore.models.base import utcnow
from authcore.models.otp import Otp, OtpPurpose, OtpType
from authcore.services.notifier import LogNotifier, Notifier, mask_identifier

logger = logging.getLogger(__name__)

OTP_LENGTH = 6


def generate_code() -> str:
    """First six hex characters of SHA-256 over 16 bytes of CSPRNG output."""
    digest = hashlib.sha256(secrets.token_bytes(16)).hexdigest()
    return digest[:OTP_LENGTH]


def parse_purpose(purpose: OtpPurpose | str) -> OtpPurpose:
    try:
        return OtpPurpose(purpose)
    except ValueError:
        raise InvalidPurposeError(f"Invalid OTP purpose: {purpose}") from None


class OtpManager:
    """Issues and checks OTP records through an :class:`OtpRepository`."""

    def __init__(
        self,
        otps: OtpRepository,
        *,
        expiry_seconds: int = 900,
        daily_limit: int = 5,
        max_attempts: int = 3,
        notifier: Notifier | None = None,
    ) -> None:
        self._otps = otps
        self._expiry = timedelta(seconds=expiry_seconds)
        self._daily_limit = daily_limit
        self._max_attempts = max_attempts
        self._notifier = notifier or LogNotifier()

    async def generate(
        self,
        user_id: str,
        identifier: str,
        purpose: OtpPurpose | str,
        *,
        supersede: bool = False,
    ) -> Otp:
        """Create and dispatch a new code.

        Raises ``DailyLimitExceededError`` when the user has already requested
        ``daily_limit`` codes on this channel today; earlier codes are left
        alone in that case.  With *supersede*, unused codes previously sent to
        *identifier* for *purpose* stop working once the new one is stored.
        Delivery happens after the record is committed; a delivery failure is
        logged, not raised, since the user can simply request another code.
        """
        purpose = parse_purpose(purpose)
        otp_type = OtpType.for_identifier(identifier)

        daily_count = await self._otps.get_daily_count(user_id, otp_type)
        if daily_count >= self._daily_limit:
            logger.warning(
                "Daily OTP limit reached for user %s on %s", user_id, otp_type.value
            )
            raise DailyLimitExceededError("Daily OTP limit reached")

        otp = await self._otps.create(
            code=generate_code(),
            user_id=user_id,
            identifier=identifier,
            type=otp_type,
            purpose=purpose,
            expires_at=utcnow() + self._expiry,
            daily_limit=self._daily_limit,
            supersede=supersede,
        )
        logger.info(
            "OTP %s generated for user %s via %s", purpose.value, user_id, otp_type.value
        )

        try:
            await self._notifier.send_otp(identifier, otp.code, purpose)
        except Exception:
            logger.exception("Failed to deliver OTP to %s", mask_identifier(identifier))
        return otp

    async def verify(
        self,
        code: str,
        identifier: str,
        purpose: OtpPurpose | str,
        max_attempts: int | None = None,
    ) -> Otp | None:
        """Consume a matching live code, or return ``None``.

        ``None`` covers wrong, expired, used and exhausted codes alike; a miss
        also burns one attempt on every live code for (identifier, purpose).
        """
        purpose = parse_purpose(purpose)
        otp = await self._otps.verify(
            code, identifier, purpose, max_attempts or self._max_attempts
        )
        if otp is None:
            logger.info(
                "OTP %s verification failed for %s", purpose.value, mask_identifier(identifier)
            )
        return otp

    async def invalidate_existing(
        self, user_id: str, purpose: OtpPurpose | str, identifier: str | None = None
    ) -> int:
        return await self._otps.invalidate_existing(user_id, parse_purpose(purpose), identifier)
