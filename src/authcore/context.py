"""Application context — builds and owns every long-lived component."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from authcore.config import Settings
from authcore.database.engine import create_engine, create_session_factory
from authcore.database.repositories.otps import SqlOtpRepository
from authcore.database.repositories.privileges import SqlPrivilegeRepository
from authcore.database.repositories.roles import SqlRoleRepository
from authcore.database.repositories.tokens import SqlBlacklistedTokenRepository
from authcore.database.repositories.users import SqlUserRepository
from authcore.security.password_policy import PasswordPolicy
from authcore.services.auth_service import AuthService
from authcore.services.notifier import LogNotifier, Notifier, WebhookNotifier
from authcore.services.otp_manager import OtpManager
from authcore.services.privileges import PrivilegeService
from authcore.services.roles import RoleService
from authcore.services.token_manager import TokenManager
from authcore.services.user_service import UserService

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    settings: Settings
    engine: AsyncEngine
    session_factory: async_sessionmaker[AsyncSession]
    password_policy: PasswordPolicy
    otp_manager: OtpManager
    token_manager: TokenManager
    auth: AuthService
    roles: RoleService
    privileges: PrivilegeService
    users: UserService

    @classmethod
    def build(cls, settings: Settings, notifier: Notifier | None = None) -> "AppContext":
        """Wire repositories, managers and services from *settings*.

        When no *notifier* is given, OTPs go to ``otp_webhook_url`` if it is
        set and to the log otherwise.
        """
        engine = create_engine(settings.database_url, echo=settings.debug)
        session_factory = create_session_factory(engine)

        user_repo = SqlUserRepository(session_factory)
        role_repo = SqlRoleRepository(session_factory)
        privilege_repo = SqlPrivilegeRepository(session_factory)
        otp_repo = SqlOtpRepository(session_factory)
        blacklist_repo = SqlBlacklistedTokenRepository(
            session_factory, ttl_seconds=settings.blacklist_ttl
        )

        if notifier is None:
            if settings.otp_webhook_url:
                notifier = WebhookNotifier(settings.otp_webhook_url)
            else:
                notifier = LogNotifier()

        policy = PasswordPolicy()
        otp_manager = OtpManager(
            otp_repo,
            expiry_seconds=settings.otp_expiry,
            daily_limit=settings.otp_daily_limit,
            max_attempts=settings.otp_max_attempts,
            notifier=notifier,
        )
        token_manager = TokenManager(
            blacklist_repo,
            access_secret=settings.jwt_access_secret,
            refresh_secret=settings.jwt_refresh_secret,
            access_ttl=settings.access_token_ttl,
            refresh_ttl=settings.refresh_token_ttl,
            algorithm=settings.jwt_algorithm,
        )

        return cls(
            settings=settings,
            engine=engine,
            session_factory=session_factory,
            password_policy=policy,
            otp_manager=otp_manager,
            token_manager=token_manager,
            auth=AuthService(user_repo, role_repo, otp_manager, token_manager, policy),
            roles=RoleService(role_repo, user_repo),
            privileges=PrivilegeService(privilege_repo, role_repo),
            users=UserService(user_repo),
        )

    async def dispose(self) -> None:
        await self.engine.dispose()
        logger.info("Database engine disposed")
