"""argon2id password hashing.

Hashing is CPU-bound and deliberately slow, so the async helpers push it
onto a worker thread instead of blocking the event loop.
"""

from __future__ import annotations

import asyncio
import hashlib

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

_hasher = PasswordHasher()  # argon2id with the library's recommended parameters


def hash_password(plain: str) -> str:
    return _hasher.hash(plain)


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if *plain* matches *hashed*; any malformed hash is a mismatch."""
    try:
        return _hasher.verify(hashed, plain)
    except (VerifyMismatchError, VerificationError, InvalidHashError):
        return False


# Checked against when the login identifier is unknown, so both branches
# spend the same time in argon2 and response timing reveals nothing.
DUMMY_HASH: str = hash_password("authcore-timing-equalizer")


async def hash_password_async(plain: str) -> str:
    return await asyncio.to_thread(hash_password, plain)


async def verify_password_async(plain: str, hashed: str | None) -> bool:
    return await asyncio.to_thread(verify_password, plain, hashed or DUMMY_HASH)


def fingerprint(secret: str) -> str:
    """Short, non-reversible tag for a token, safe to put in log lines."""
    return hashlib.sha256(secret.encode("utf-8")).hexdigest()[:12]
