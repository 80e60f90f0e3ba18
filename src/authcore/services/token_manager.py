"""Token manager — JWT access/refresh pairs and the revocation list.

Access and refresh tokens are signed with independent secrets, so a leaked
access secret cannot mint refresh tokens.  Only the refresh flow consults
the blacklist; short-lived access tokens are trusted until they expire.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

import jwt

from authcore.database.interfaces import BlacklistedTokenRepository
from authcore.errors import InvalidTokenError, RevokedTokenError
from authcore.models.base import utcnow
from authcore.security.hashing import fingerprint

logger = logging.getLogger(__name__)

ACCESS = "access"
REFRESH = "refresh"


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str
    token_type: str = "Bearer"


@dataclass(frozen=True)
class TokenClaims:
    """Verified claims of an access or refresh token."""

    user_id: str
    issued_at: datetime
    expires_at: datetime
    token_type: str
    token_id: str
    role_id: str | None = None


class TokenManager:
    """Issues, verifies and revokes JWTs."""

    def __init__(
        self,
        blacklist: BlacklistedTokenRepository,
        *,
        access_secret: str,
        refresh_secret: str,
        access_ttl: timedelta = timedelta(minutes=15),
        refresh_ttl: timedelta = timedelta(days=7),
        algorithm: str = "HS256",
    ) -> None:
        self._blacklist = blacklist
        self._secrets = {ACCESS: access_secret, REFRESH: refresh_secret}
        self._ttls = {ACCESS: access_ttl, REFRESH: refresh_ttl}
        self._algorithm = algorithm

    # ── Issuing ──────────────────────────────────────────

    def generate_tokens(self, user_id: str, role_id: str | None = None) -> TokenPair:
        """Sign a fresh access/refresh pair; *role_id* is the active role context."""
        now = utcnow()
        return TokenPair(
            access_token=self._encode(ACCESS, user_id, role_id, now),
            refresh_token=self._encode(REFRESH, user_id, role_id, now),
        )

    def generate_access_token(self, user_id: str, role_id: str | None = None) -> str:
        return self._encode(ACCESS, user_id, role_id, utcnow())

    def _encode(self, token_type: str, user_id: str, role_id: str | None, now: datetime) -> str:
        payload: dict[str, Any] = {
            "user_id": user_id,
            "type": token_type,
            "jti": uuid.uuid4().hex,
            "iat": now,
            "exp": now + self._ttls[token_type],
        }
        if role_id is not None:
            payload["role_id"] = role_id
        return jwt.encode(payload, self._secrets[token_type], algorithm=self._algorithm)

    # ── Verification ─────────────────────────────────────

    async def verify_access_token(self, token: str) -> TokenClaims:
        """Check signature, expiry and claims of an access token.

        The blacklist is not consulted here: access tokens live for minutes and
        revocation is enforced on the refresh path.
        """
        return self._decode(ACCESS, token)

    async def verify_refresh_token(self, token: str) -> TokenClaims:
        """Reject revoked tokens first, then verify signature and claims."""
        if await self._blacklist.is_blacklisted(token):
            logger.warning("Revoked refresh token presented (%s)", fingerprint(token))
            raise RevokedTokenError("Token has been revoked")
        return self._decode(REFRESH, token)

    def _decode(self, token_type: str, token: str) -> TokenClaims:
        try:
            payload = jwt.decode(
                token,
                self._secrets[token_type],
                algorithms=[self._algorithm],
                options={"require": ["exp", "iat"]},
            )
        except jwt.ExpiredSignatureError:
            raise InvalidTokenError(f"Expired {token_type} token") from None
        except jwt.InvalidTokenError as exc:
            logger.info("Rejected %s token %s: %s", token_type, fingerprint(token), exc)
            raise InvalidTokenError(f"Invalid {token_type} token") from None

        user_id = payload.get("user_id")
        if not user_id:
            raise InvalidTokenError("Invalid token format")
        if payload.get("type") != token_type:
            raise InvalidTokenError(f"Invalid {token_type} token")

        return TokenClaims(
            user_id=user_id,
            issued_at=datetime.fromtimestamp(payload["iat"], tz=UTC),
            expires_at=datetime.fromtimestamp(payload["exp"], tz=UTC),
            token_type=token_type,
            token_id=payload.get("jti", ""),
            role_id=payload.get("role_id"),
        )

    # ── Rotation / revocation ────────────────────────────

    async def refresh_tokens(self, refresh_token: str) -> TokenPair:
        """Verify *refresh_token* and issue a new pair.

        The consumed refresh token stays valid until it expires or is revoked.
        """
        claims = await self.verify_refresh_token(refresh_token)
        return self.generate_tokens(claims.user_id, claims.role_id)

    async def blacklist_token(self, token: str, user_id: str) -> None:
        await self._blacklist.add(token, user_id)
        logger.info("Token %s revoked for user %s", fingerprint(token), user_id)

    async def is_blacklisted(self, token: str) -> bool:
        return await self._blacklist.is_blacklisted(token)

    async def purge_expired(self) -> int:
        removed = await self._blacklist.cleanup()
        if removed:
            logger.info("Purged %d expired blacklist entries", removed)
        return removed

    # ── Inspection ───────────────────────────────────────

    @staticmethod
    def decode_token(token: str) -> dict[str, Any]:
        """Decode WITHOUT verifying the signature.

        For logging and debugging only; never base an authorization decision on it.
        """
        try:
            return jwt.decode(token, options={"verify_signature": False})
        except jwt.InvalidTokenError:
            raise InvalidTokenError("Invalid token format") from None
