"""Tests for the SQLAlchemy repositories — soft delete and uniqueness."""

from __future__ import annotations

import pytest
import pytest_asyncio

from authcore.database.repositories.roles import SqlRoleRepository
from authcore.database.repositories.users import SqlUserRepository
from authcore.errors import DuplicateEmailError, DuplicatePhoneError, UserNotFoundError
from authcore.models.user import VerificationStatus


@pytest_asyncio.fixture
async def users(ctx):
    return SqlUserRepository(ctx.session_factory)


@pytest_asyncio.fixture
async def default_role(ctx):
    return await SqlRoleRepository(ctx.session_factory).find_default_role()


async def _create(users, role, email="alice@example.com", phone="+628111111111"):
    return await users.create(
        full_name="Alice",
        email=email,
        phone_number=phone,
        password_hash="hash",
        default_role_id=role.id,
    )


@pytest.mark.asyncio
async def test_create_adds_default_membership(users, default_role):
    user = await _create(users, default_role)
    found = await users.find_by_id_with_roles(user.id)
    assert found.role_ids == {default_role.id}
    assert user.verification_status == VerificationStatus.INITIAL_REGISTERED


@pytest.mark.asyncio
async def test_unique_identifiers(users, default_role):
    await _create(users, default_role)
    with pytest.raises(DuplicateEmailError):
        await _create(users, default_role, phone="+628122222222")
    with pytest.raises(DuplicatePhoneError):
        await _create(users, default_role, email="bob@example.com")


@pytest.mark.asyncio
async def test_soft_deleted_user_is_invisible(users, default_role):
    user = await _create(users, default_role)
    await users.delete(user.id)

    assert await users.find_by_id(user.id) is None
    assert await users.find_by_email("alice@example.com") is None
    assert await users.find_by_identifier("+628111111111") is None
    assert await users.find_by_id_with_roles(user.id) is None
    _, total = await users.find_many()
    assert total == 0

    with pytest.raises(UserNotFoundError):
        await users.delete(user.id)


@pytest.mark.asyncio
async def test_identifiers_reusable_after_soft_delete(users, default_role):
    first = await _create(users, default_role)
    await users.delete(first.id)
    second = await _create(users, default_role)
    assert second.id != first.id


@pytest.mark.asyncio
async def test_deleted_rows_still_count_for_first_user(users, default_role):
    assert await users.is_first_user()
    user = await _create(users, default_role)
    await users.delete(user.id)
    assert not await users.is_first_user()


@pytest.mark.asyncio
async def test_update_rechecks_uniqueness(users, default_role):
    await _create(users, default_role)
    bob = await _create(users, default_role, email="bob@example.com", phone="+628122222222")
    with pytest.raises(DuplicateEmailError):
        await users.update(bob.id, email="alice@example.com")


@pytest.mark.asyncio
async def test_update_derives_verification_status(users, default_role):
    user = await _create(users, default_role)
    updated = await users.update(user.id, is_phone_verified=True)
    assert updated.verification_status == VerificationStatus.PARTIALLY_VERIFIED
    updated = await users.update(user.id, is_email_verified=True)
    assert updated.verification_status == VerificationStatus.VERIFIED


@pytest.mark.asyncio
async def test_update_rejects_unknown_fields(users, default_role):
    user = await _create(users, default_role)
    with pytest.raises(ValueError):
        await users.update(user.id, verification_status=VerificationStatus.VERIFIED)


@pytest.mark.asyncio
async def test_find_many_search_and_filter(users, default_role, ctx):
    await _create(users, default_role)
    await _create(users, default_role, email="bob@example.com", phone="+628122222222")

    found, total = await users.find_many(search="BOB")
    assert total == 1
    assert found[0].email == "bob@example.com"

    _, total = await users.find_many(default_role_id=default_role.id)
    assert total == 2
    _, total = await users.find_many(default_role_id="other")
    assert total == 0


@pytest.mark.asyncio
async def test_unique_index_violation_maps_to_duplicate(users, default_role, monkeypatch):
    async def skip_check(session, **kwargs):
        return None

    # Simulates a concurrent insert that slipped past the read-side check.
    monkeypatch.setattr(SqlUserRepository, "_check_unique", staticmethod(skip_check))
    await _create(users, default_role)

    with pytest.raises(DuplicateEmailError):
        await _create(users, default_role, phone="+628122222222")
    with pytest.raises(DuplicatePhoneError):
        await _create(users, default_role, email="bob@example.com")

    bob = await _create(users, default_role, email="bob@example.com", phone="+628133333333")
    with pytest.raises(DuplicatePhoneError):
        await users.update(bob.id, phone_number="+628111111111")
