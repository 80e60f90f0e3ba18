"""Tests for the TokenManager — signing, verification and revocation."""

from __future__ import annotations

from datetime import timedelta

import jwt
import pytest

from authcore.database.repositories.tokens import SqlBlacklistedTokenRepository
from authcore.errors import InvalidTokenError, RevokedTokenError
from authcore.services.token_manager import TokenManager

ACCESS_SECRET = "unit-access-secret-" + "x" * 40
REFRESH_SECRET = "unit-refresh-secret-" + "y" * 40


@pytest.fixture
def tokens(ctx):
    return TokenManager(
        SqlBlacklistedTokenRepository(ctx.session_factory),
        access_secret=ACCESS_SECRET,
        refresh_secret=REFRESH_SECRET,
    )


@pytest.mark.asyncio
async def test_access_token_claims(tokens):
    pair = tokens.generate_tokens("user-1", "role-1")
    assert pair.token_type == "Bearer"

    claims = await tokens.verify_access_token(pair.access_token)
    assert claims.user_id == "user-1"
    assert claims.role_id == "role-1"
    assert claims.token_type == "access"
    assert claims.expires_at - claims.issued_at == timedelta(minutes=15)


@pytest.mark.asyncio
async def test_tokens_are_unique_per_issue(tokens):
    first = tokens.generate_tokens("user-1")
    second = tokens.generate_tokens("user-1")
    assert first.refresh_token != second.refresh_token


@pytest.mark.asyncio
async def test_access_and_refresh_are_not_interchangeable(tokens):
    pair = tokens.generate_tokens("user-1")
    with pytest.raises(InvalidTokenError):
        await tokens.verify_access_token(pair.refresh_token)
    with pytest.raises(InvalidTokenError):
        await tokens.verify_refresh_token(pair.access_token)


@pytest.mark.asyncio
async def test_token_signed_with_other_secret_is_rejected(tokens):
    forged = jwt.encode(
        {"user_id": "user-1", "type": "access", "iat": 0, "exp": 4102444800},
        "some-other-secret-" + "z" * 40,
        algorithm="HS256",
    )
    with pytest.raises(InvalidTokenError):
        await tokens.verify_access_token(forged)


@pytest.mark.asyncio
async def test_expired_token_is_rejected(ctx):
    manager = TokenManager(
        SqlBlacklistedTokenRepository(ctx.session_factory),
        access_secret=ACCESS_SECRET,
        refresh_secret=REFRESH_SECRET,
        access_ttl=timedelta(seconds=-30),
    )
    with pytest.raises(InvalidTokenError):
        await manager.verify_access_token(manager.generate_access_token("user-1"))


@pytest.mark.asyncio
async def test_blacklist_blocks_refresh_but_not_access(tokens):
    pair = tokens.generate_tokens("user-1")
    await tokens.blacklist_token(pair.access_token, "user-1")
    await tokens.blacklist_token(pair.refresh_token, "user-1")

    assert await tokens.is_blacklisted(pair.refresh_token)
    claims = await tokens.verify_access_token(pair.access_token)
    assert claims.user_id == "user-1"

    with pytest.raises(RevokedTokenError):
        await tokens.verify_refresh_token(pair.refresh_token)
    with pytest.raises(RevokedTokenError):
        await tokens.refresh_tokens(pair.refresh_token)


@pytest.mark.asyncio
async def test_blacklisting_twice_is_harmless(tokens):
    pair = tokens.generate_tokens("user-1")
    await tokens.blacklist_token(pair.refresh_token, "user-1")
    await tokens.blacklist_token(pair.refresh_token, "user-1")
    assert await tokens.is_blacklisted(pair.refresh_token)


@pytest.mark.asyncio
async def test_refresh_issues_new_pair_with_same_context(tokens):
    pair = tokens.generate_tokens("user-1", "role-9")
    rotated = await tokens.refresh_tokens(pair.refresh_token)
    claims = await tokens.verify_access_token(rotated.access_token)
    assert (claims.user_id, claims.role_id) == ("user-1", "role-9")


@pytest.mark.asyncio
async def test_purge_removes_only_expired_entries(ctx):
    expired_repo = SqlBlacklistedTokenRepository(ctx.session_factory, ttl_seconds=-60)
    live_repo = SqlBlacklistedTokenRepository(ctx.session_factory)
    await expired_repo.add("old-token", "user-1")
    await live_repo.add("new-token", "user-1")

    assert not await live_repo.is_blacklisted("old-token")
    assert await live_repo.cleanup() == 1
    assert await live_repo.is_blacklisted("new-token")


@pytest.mark.asyncio
async def test_decode_token_without_verification(tokens):
    pair = tokens.generate_tokens("user-1", "role-1")
    payload = TokenManager.decode_token(pair.access_token)
    assert payload["user_id"] == "user-1"
    assert payload["type"] == "access"

    with pytest.raises(InvalidTokenError):
        TokenManager.decode_token("not-a-jwt")
