"""Typed failures raised by the auth core.

Every error carries the HTTP status it usually surfaces as, so the thin API
layer can map it without knowing the concrete type.  ``details`` holds
field-level information for validation failures; ``cause`` keeps the original
exception for logging when an unexpected failure is wrapped.
"""

from __future__ import annotations

import functools
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class AppError(Exception):
    """Base class for every failure the core reports to callers."""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        *,
        details: list[dict[str, Any]] | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or []
        self.cause = cause

    @property
    def kind(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.kind, "message": self.message}
        if self.details:
            body["details"] = self.details
        return body


# ── Kinds ────────────────────────────────────────────────


class ValidationError(AppError):
    status_code = 422


class UnauthorizedError(AppError):
    status_code = 401


class ForbiddenError(AppError):
    status_code = 403


class NotFoundError(AppError):
    status_code = 404


class ConflictError(AppError):
    status_code = 400


class InternalError(AppError):
    status_code = 500


# ── Password policy ──────────────────────────────────────


class WeakPasswordError(ValidationError):
    """Password rejected by the strength policy; ``reason`` is machine-readable."""

    def __init__(self, reason: str, message: str, **extra: Any) -> None:
        detail = {"field": "password", "type": reason, "message": message, **extra}
        super().__init__(message, details=[detail])
        self.reason = reason


# ── OTP ──────────────────────────────────────────────────


class DailyLimitExceededError(ConflictError):
    pass


class InvalidPurposeError(ValidationError):
    pass


class InvalidOtpError(ValidationError):
    pass


# ── Tokens / credentials ─────────────────────────────────


class InvalidTokenError(UnauthorizedError):
    pass


class RevokedTokenError(UnauthorizedError):
    pass


class InvalidCredentialsError(UnauthorizedError):
    def __init__(self, message: str = "Invalid credentials") -> None:
        super().__init__(message)


# ── Accounts ─────────────────────────────────────────────


class DuplicateEmailError(ConflictError):
    def __init__(self, message: str = "Email already registered") -> None:
        super().__init__(message)


class DuplicatePhoneError(ConflictError):
    def __init__(self, message: str = "Phone number already registered") -> None:
        super().__init__(message)


class UserNotFoundError(NotFoundError):
    def __init__(self, message: str = "User not found") -> None:
        super().__init__(message)


class NoDefaultRoleError(InternalError):
    """No default (or SUPER_ADMIN) role is seeded: a bootstrap problem, not retryable."""


class LogoutFailedError(InternalError):
    pass


# ── Permissions ──────────────────────────────────────────


class InvalidActionError(ValidationError):
    pass


# ── Helpers ──────────────────────────────────────────────


def guard(action: str) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """Log failures of a public coroutine and wrap unknown ones as InternalError.

    Known ``AppError``s pass through unchanged; anything else becomes an
    ``InternalError(action)`` chained to the original exception.
    """

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            try:
                return await func(*args, **kwargs)
            except AppError as exc:
                logger.warning("%s: %s (%s)", action, exc.message, exc.kind)
                raise
            except Exception as exc:
                logger.exception("%s: unexpected error", action)
                raise InternalError(action, cause=exc) from exc

        return wrapper

    return decorator
