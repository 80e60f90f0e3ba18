"""Password strength policy — stateless validation of new passwords and passphrases."""

from __future__ import annotations

import enum
import logging
import re

from authcore.errors import AppError, InternalError, WeakPasswordError
from authcore.security.common_passwords import COMMON_PASSWORDS

logger = logging.getLogger(__name__)

SPECIAL_CHARACTERS = "\\!@#$%^&*()+_-=}{[]|:;\"/?.><,`~'"

_CHARACTER_CLASSES = {
    "uppercase": re.compile(r"[A-Z]"),
    "lowercase": re.compile(r"[a-z]"),
    "number": re.compile(r"\d"),
    "special": re.compile("[" + re.escape(SPECIAL_CHARACTERS) + "]"),
}


class PasswordErrorReason(str, enum.Enum):
    INVALID_INPUT = "INVALID_INPUT"
    INVALID_LENGTH = "INVALID_LENGTH"
    COMMON_PASSWORD = "COMMON_PASSWORD"
    INVALID_PASSPHRASE = "INVALID_PASSPHRASE"
    INVALID_CHARACTER = "INVALID_CHARACTER"
    MISSING_REQUIREMENTS = "MISSING_REQUIREMENTS"
    INSUFFICIENT_COMPLEXITY = "INSUFFICIENT_COMPLEXITY"


class PasswordPolicy:
    """Enforces length, character-class and denylist rules.

    Standard passwords: 8-15 characters, no whitespace, at least three of
    the four character classes.  Passphrases: 20-255 characters made of at
    least three words.  Both are rejected when found in the denylist.
    """

    MIN_PASSWORD_LENGTH = 8
    MAX_PASSWORD_LENGTH = 15
    MIN_PASSPHRASE_LENGTH = 20
    MAX_PASSPHRASE_LENGTH = 255
    MIN_PASSPHRASE_WORDS = 3
    MIN_CHARACTER_CLASSES = 3

    def __init__(self, denylist: frozenset[str] = COMMON_PASSWORDS) -> None:
        self._denylist = denylist

    def is_common_password(self, password: str) -> bool:
        return password.strip().lower() in self._denylist

    def validate_strength(self, password: str, is_passphrase: bool = False) -> None:
        """Raise :class:`WeakPasswordError` if *password* breaks any rule."""
        try:
            if not isinstance(password, str) or not password:
                raise WeakPasswordError(PasswordErrorReason.INVALID_INPUT.value, "Invalid password")

            self._check_length(password, is_passphrase)

            if self.is_common_password(password):
                raise WeakPasswordError(
                    PasswordErrorReason.COMMON_PASSWORD.value,
                    "Too common, choose a more unique combination",
                )

            if is_passphrase:
                self._check_passphrase(password)
            else:
                self._check_standard(password)
        except AppError:
            raise
        except Exception as exc:
            logger.exception(
                "Password validation error (%s)", "passphrase" if is_passphrase else "standard"
            )
            raise InternalError("Failed to validate password", cause=exc) from exc

    # ── Private helpers ──────────────────────────────────

    def _check_length(self, password: str, is_passphrase: bool) -> None:
        if is_passphrase:
            label, low, high = "Passphrase", self.MIN_PASSPHRASE_LENGTH, self.MAX_PASSPHRASE_LENGTH
        else:
            label, low, high = "Password", self.MIN_PASSWORD_LENGTH, self.MAX_PASSWORD_LENGTH

        if len(password) < low:
            raise WeakPasswordError(
                PasswordErrorReason.INVALID_LENGTH.value,
                f"{label} must be at least {low} characters",
            )
        if len(password) > high:
            raise WeakPasswordError(
                PasswordErrorReason.INVALID_LENGTH.value,
                f"{label} must be at most {high} characters",
            )

    def _check_passphrase(self, passphrase: str) -> None:
        if len(passphrase.split()) < self.MIN_PASSPHRASE_WORDS:
            raise WeakPasswordError(
                PasswordErrorReason.INVALID_PASSPHRASE.value,
                f"Passphrase must contain at least {self.MIN_PASSPHRASE_WORDS} words",
            )

    def _check_standard(self, password: str) -> None:
        if re.search(r"\s", password):
            raise WeakPasswordError(
                PasswordErrorReason.INVALID_CHARACTER.value,
                "Password must not contain whitespace",
            )

        missing = [name for name, pattern in _CHARACTER_CLASSES.items() if not pattern.search(password)]
        if len(_CHARACTER_CLASSES) - len(missing) < self.MIN_CHARACTER_CLASSES:
            raise WeakPasswordError(
                PasswordErrorReason.INSUFFICIENT_COMPLEXITY.value,
                "Password must use at least 3 of: uppercase, lowercase, number, special character",
                missing=missing,
            )
