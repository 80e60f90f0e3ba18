"""User router — the caller's own profile plus account administration."""

from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel

from authcore.api.deps import get_context, require_privileges
from authcore.context import AppContext
from authcore.services.token_manager import TokenClaims
from authcore.services.types import Profile, UserView

router = APIRouter(prefix="/users", tags=["users"])


class ProfileUpdate(BaseModel):
    full_name: str | None = None
    position: str | None = None


class UserUpdate(BaseModel):
    full_name: str | None = None
    email: str | None = None
    phone_number: str | None = None
    position: str | None = None
    is_active: bool | None = None


@router.get("/me")
async def get_profile(
    claims: TokenClaims = Depends(require_privileges("profile:read")),
    ctx: AppContext = Depends(get_context),
) -> Profile:
    return await ctx.users.get_profile(claims.user_id)


@router.patch("/me")
async def update_profile(
    body: ProfileUpdate,
    claims: TokenClaims = Depends(require_privileges("profile:update")),
    ctx: AppContext = Depends(get_context),
) -> Profile:
    return await ctx.users.update_profile(
        claims.user_id, full_name=body.full_name, position=body.position
    )


@router.get("", dependencies=[Depends(require_privileges("user:read"))])
async def list_users(
    skip: int = Query(0, ge=0),
    take: int = Query(10, ge=1, le=100),
    search: str | None = None,
    ctx: AppContext = Depends(get_context),
) -> dict:
    page = await ctx.users.list_users(skip=skip, take=take, search=search)
    return asdict(page)


@router.patch("/{user_id}", dependencies=[Depends(require_privileges("user:update"))])
async def update_user(
    user_id: str, body: UserUpdate, ctx: AppContext = Depends(get_context)
) -> UserView:
    return await ctx.users.update_user(user_id, **body.model_dump(exclude_none=True))


@router.delete(
    "/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_privileges("user:delete"))],
)
async def delete_user(user_id: str, ctx: AppContext = Depends(get_context)):
    await ctx.users.delete_user(user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
