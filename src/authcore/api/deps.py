"""Shared FastAPI dependencies: context lookup, bearer auth and privilege checks."""

from __future__ import annotations

import logging

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from authcore.context import AppContext
from authcore.errors import ForbiddenError, UnauthorizedError
from authcore.services.token_manager import TokenClaims

logger = logging.getLogger(__name__)

_bearer = HTTPBearer(auto_error=False)


def get_context(request: Request) -> AppContext:
    return request.app.state.context


async def get_bearer_token(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
) -> str:
    if credentials is None:
        raise UnauthorizedError("Missing bearer token")
    return credentials.credentials


async def get_current_claims(
    token: str = Depends(get_bearer_token),
    ctx: AppContext = Depends(get_context),
) -> TokenClaims:
    return await ctx.token_manager.verify_access_token(token)


def require_privileges(*actions: str):
    """Dependency factory: the caller's active role must hold every one of *actions*."""

    async def dependency(
        claims: TokenClaims = Depends(get_current_claims),
        ctx: AppContext = Depends(get_context),
    ) -> TokenClaims:
        if claims.role_id is None:
            raise ForbiddenError("No active role")
        check = await ctx.privileges.check_privilege(claims.role_id, list(actions))
        if not check.granted:
            raise ForbiddenError(
                "Insufficient privileges",
                details=[{"missing_privileges": check.missing_privileges}],
            )
        return claims

    return dependency
