"""Auth service — orchestrates the account lifecycle.

Registration, login, logout, token refresh, password reset/change, account
verification and active-role switching are composed here from the
repositories, the password policy and the OTP and token managers.
"""

from __future__ import annotations

import asyncio
import logging

from authcore.database.interfaces import RoleRepository, UserRepository
from authcore.errors import (
    DuplicateEmailError,
    DuplicatePhoneError,
    ForbiddenError,
    InvalidCredentialsError,
    InvalidOtpError,
    LogoutFailedError,
    NoDefaultRoleError,
    UserNotFoundError,
    ValidationError,
    guard,
)
from authcore.models.otp import OtpPurpose
from authcore.models.role import SystemRole
from authcore.models.user import User
from authcore.security.hashing import hash_password_async, verify_password_async
from authcore.security.password_policy import PasswordPolicy
from authcore.services.notifier import mask_identifier
from authcore.services.otp_manager import OtpManager, parse_purpose
from authcore.services.token_manager import TokenManager, TokenPair
from authcore.services.types import AuthResult, RoleSwitchResult, UserView

logger = logging.getLogger(__name__)

CHANNELS = ("EMAIL", "PHONE")


class AuthService:
    def __init__(
        self,
        users: UserRepository,
        roles: RoleRepository,
        otp_manager: OtpManager,
        token_manager: TokenManager,
        password_policy: PasswordPolicy,
    ) -> None:
        self._users = users
        self._roles = roles
        self._otp = otp_manager
        self._tokens = token_manager
        self._policy = password_policy

    # ── Registration / login ─────────────────────────────

    @guard("Failed to register user")
    async def register(
        self,
        full_name: str,
        email: str,
        phone_number: str,
        password: str,
        *,
        is_passphrase: bool = False,
    ) -> AuthResult:
        """Create an account, issue tokens and send registration codes.

        The very first account ever created becomes SUPER_ADMIN; everyone
        after that gets the default role.  Codes go to both the email and the
        phone number; a failure there is logged and does not undo the
        registration.
        """
        if await self._users.find_by_email(email) is not None:
            raise DuplicateEmailError()
        if await self._users.find_by_phone_number(phone_number) is not None:
            raise DuplicatePhoneError()

        if await self._users.is_first_user():
            role = await self._roles.find_system_role(SystemRole.SUPER_ADMIN.value)
        else:
            role = await self._roles.find_default_role()
        if role is None:
            raise NoDefaultRoleError("Default role not found")

        self._policy.validate_strength(password, is_passphrase)
        password_hash = await hash_password_async(password)

        user = await self._users.create(
            full_name=full_name,
            email=email,
            phone_number=phone_number,
            password_hash=password_hash,
            default_role_id=role.id,
        )
        logger.info("User registered: %s with role %s", user.id, role.name)

        tokens = self._tokens.generate_tokens(user.id, role.id)

        results = await asyncio.gather(
            self._otp.generate(user.id, email, OtpPurpose.REGISTRATION),
            self._otp.generate(user.id, phone_number, OtpPurpose.REGISTRATION),
            return_exceptions=True,
        )
        for identifier, result in zip((email, phone_number), results):
            if isinstance(result, BaseException):
                logger.warning(
                    "Registration OTP for %s not sent: %s", mask_identifier(identifier), result
                )

        return AuthResult(user=UserView.from_model(user), tokens=tokens)

    @guard("Failed to login")
    async def login(self, identifier: str, password: str) -> AuthResult:
        """Authenticate by email or phone number.

        Unknown identifier, wrong password and inactive account all produce the
        same ``InvalidCredentialsError``, and the argon2 check always runs.
        """
        user = await self._users.find_by_identifier(identifier)
        password_ok = await verify_password_async(password, user.password if user else None)
        if user is None or not password_ok or not user.is_active:
            logger.info("Login failed for %s", mask_identifier(identifier))
            raise InvalidCredentialsError()

        tokens = self._tokens.generate_tokens(user.id, user.default_role_id)
        logger.info("User logged in: %s", user.id)
        return AuthResult(user=UserView.from_model(user), tokens=tokens)

    # ── Tokens ───────────────────────────────────────────

    @guard("Failed to logout")
    async def logout(self, access_token: str, refresh_token: str, user_id: str) -> None:
        results = await asyncio.gather(
            self._tokens.blacklist_token(access_token, user_id),
            self._tokens.blacklist_token(refresh_token, user_id),
            return_exceptions=True,
        )
        failures = [r for r in results if isinstance(r, BaseException)]
        if failures:
            raise LogoutFailedError("Failed to logout", cause=failures[0]) from failures[0]
        logger.info("User logged out: %s", user_id)

    @guard("Failed to refresh token")
    async def refresh(self, refresh_token: str) -> TokenPair:
        claims = await self._tokens.verify_refresh_token(refresh_token)
        user = await self._users.find_by_id(claims.user_id)
        if user is None:
            raise UserNotFoundError()
        return self._tokens.generate_tokens(user.id, user.default_role_id)

    # ── Passwords ────────────────────────────────────────

    @guard("Failed to reset password")
    async def reset_password(
        self,
        user_id: str,
        code: str,
        new_password: str,
        identifier: str | None = None,
        *,
        is_passphrase: bool = False,
    ) -> None:
        """Set a new password after a PASSWORD_RESET code is confirmed.

        The code is checked against the user's email unless *identifier* names
        one of the user's own identifiers.
        """
        self._policy.validate_strength(new_password, is_passphrase)

        user = await self._users.find_by_id(user_id)
        if user is None:
            raise UserNotFoundError()
        if identifier is not None and identifier not in (user.email, user.phone_number):
            raise InvalidOtpError("Invalid or expired OTP")

        otp = await self._otp.verify(code, identifier or user.email, OtpPurpose.PASSWORD_RESET)
        if otp is None:
            raise InvalidOtpError("Invalid or expired OTP")

        await self._users.update(user_id, password=await hash_password_async(new_password))
        logger.info("Password reset for user %s", user_id)

    @guard("Failed to change password")
    async def change_password(
        self,
        user_id: str,
        old_password: str,
        new_password: str,
        *,
        is_passphrase: bool = False,
    ) -> None:
        user = await self._users.find_by_id(user_id)
        if user is None:
            raise UserNotFoundError()
        if not await verify_password_async(old_password, user.password):
            raise InvalidCredentialsError("Current password is incorrect")

        self._policy.validate_strength(new_password, is_passphrase)
        await self._users.update(user_id, password=await hash_password_async(new_password))
        logger.info("Password changed for user %s", user_id)

    # ── Roles / verification ─────────────────────────────

    @guard("Failed to switch role")
    async def switch_active_role(self, user_id: str, role_id: str) -> RoleSwitchResult:
        found = await self._users.find_by_id_with_roles(user_id)
        if found is None:
            raise UserNotFoundError()
        if role_id not in found.role_ids:
            raise ForbiddenError("User does not have this role")

        user = await self._users.update(user_id, default_role_id=role_id)
        logger.info("User %s switched active role to %s", user_id, role_id)
        return RoleSwitchResult(
            user=UserView.from_model(user),
            access_token=self._tokens.generate_access_token(user_id, role_id),
        )

    @guard("Failed to verify account")
    async def verify_account(self, user_id: str, code: str, channel: str) -> UserView:
        """Confirm the email (``EMAIL``) or phone number (``PHONE``) with a registration code."""
        channel = channel.upper()
        if channel not in CHANNELS:
            raise ValidationError(f"Invalid verification channel: {channel}")

        user = await self._users.find_by_id(user_id)
        if user is None:
            raise UserNotFoundError()

        identifier = user.email if channel == "EMAIL" else user.phone_number
        otp = await self._otp.verify(code, identifier, OtpPurpose.REGISTRATION)
        if otp is None:
            raise InvalidOtpError("Invalid or expired OTP")

        flag = "is_email_verified" if channel == "EMAIL" else "is_phone_verified"
        updated = await self._users.update(user_id, **{flag: True})
        logger.info("User %s verified %s", user_id, channel.lower())
        return UserView.from_model(updated)

    @guard("Failed to request OTP")
    async def request_otp(self, identifier: str, purpose: OtpPurpose | str) -> None:
        """Issue a fresh code for *identifier*, superseding unused ones sent there.

        Codes sent to the account's other identifier are untouched.  Returns silently when no account owns *identifier*, so callers cannot
        probe which identifiers are registered.
        """
        purpose = parse_purpose(purpose)
        user: User | None = await self._users.find_by_identifier(identifier)
        if user is None:
            logger.info("OTP requested for unknown identifier %s", mask_identifier(identifier))
            return

        await self._otp.generate(user.id, identifier, purpose, supersede=True)
