"""Role and privilege routers.

Endpoints
---------
GET    /roles                               → paginated role list
POST   /roles                               → create a custom role
GET    /roles/{role_id}                     → role with its user count
PATCH  /roles/{role_id}                     → update a custom role
DELETE /roles/{role_id}                     → soft-delete a custom role
GET    /roles/{role_id}/privileges          → privileges granted to the role
POST   /roles/{role_id}/privileges/{pid}    → grant
DELETE /roles/{role_id}/privileges/{pid}    → revoke
GET    /roles/users/{user_id}               → a user's roles
POST   /roles/users/{user_id}               → add roles to a user
DELETE /roles/users/{user_id}/{role_id}     → remove a role from a user
POST   /roles/switch                        → change the caller's active role
POST   /roles/check                         → evaluate actions for the caller's role
GET/POST/PATCH/DELETE /privileges[...]      → privilege catalog
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel

from authcore.api.deps import get_context, get_current_claims, require_privileges
from authcore.context import AppContext
from authcore.errors import ForbiddenError
from authcore.models.role import PrivilegeGroup, RoleType
from authcore.services.token_manager import TokenClaims
from authcore.services.types import RoleSwitchResult

router = APIRouter(prefix="/roles", tags=["roles"])
privileges_router = APIRouter(prefix="/privileges", tags=["privileges"])


# ── Response / request models ────────────────────────────

class RoleOut(BaseModel):
    model_config = {"from_attributes": True}

    id: str
    name: str
    description: str | None = None
    role_type: RoleType
    is_default: bool


class RoleDetail(RoleOut):
    user_count: int


class RolePage(BaseModel):
    items: list[RoleOut]
    total: int
    page: int
    limit: int


class RoleCreate(BaseModel):
    name: str
    description: str | None = None
    is_default: bool = False


class RoleUpdate(BaseModel):
    name: str | None = None
    description: str | None = None
    is_default: bool | None = None


class AssignRolesRequest(BaseModel):
    role_ids: list[str]


class SwitchRoleRequest(BaseModel):
    role_id: str


class CheckRequest(BaseModel):
    actions: list[str]


class PrivilegeOut(BaseModel):
    model_config = {"from_attributes": True}

    id: str
    privilege_name: str
    description: str | None = None
    privilege_group: PrivilegeGroup


class PrivilegePage(BaseModel):
    items: list[PrivilegeOut]
    total: int
    page: int
    limit: int


class PrivilegeCreate(BaseModel):
    privilege_name: str
    privilege_group: str
    description: str | None = None


class PrivilegeUpdate(BaseModel):
    privilege_name: str | None = None
    privilege_group: str | None = None
    description: str | None = None


# ── Roles ────────────────────────────────────────────────

@router.get("", response_model=RolePage, dependencies=[Depends(require_privileges("role:read"))])
async def list_roles(
    skip: int = Query(0, ge=0),
    take: int = Query(10, ge=1, le=100),
    search: str | None = None,
    ctx: AppContext = Depends(get_context),
):
    page = await ctx.roles.list_roles(skip=skip, take=take, search=search)
    return RolePage(
        items=[RoleOut.model_validate(r) for r in page.items],
        total=page.total,
        page=page.page,
        limit=page.limit,
    )


@router.post(
    "",
    response_model=RoleOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_privileges("role:create"))],
)
async def create_role(body: RoleCreate, ctx: AppContext = Depends(get_context)):
    role = await ctx.roles.create_role(body.name, body.description, is_default=body.is_default)
    return RoleOut.model_validate(role)


@router.post("/switch")
async def switch_role(
    body: SwitchRoleRequest,
    claims: TokenClaims = Depends(get_current_claims),
    ctx: AppContext = Depends(get_context),
) -> RoleSwitchResult:
    return await ctx.auth.switch_active_role(claims.user_id, body.role_id)


@router.post("/check")
async def check_privileges(
    body: CheckRequest,
    claims: TokenClaims = Depends(get_current_claims),
    ctx: AppContext = Depends(get_context),
) -> dict:
    if claims.role_id is None:
        raise ForbiddenError("No active role")
    check = await ctx.privileges.check_privilege(claims.role_id, body.actions)
    return check.to_dict()


@router.get(
    "/users/{user_id}",
    response_model=list[RoleOut],
    dependencies=[Depends(require_privileges("role:read"))],
)
async def get_user_roles(user_id: str, ctx: AppContext = Depends(get_context)):
    return [RoleOut.model_validate(r) for r in await ctx.roles.get_user_roles(user_id)]


@router.post(
    "/users/{user_id}",
    response_model=list[RoleOut],
    dependencies=[Depends(require_privileges("role:update", "user:update"))],
)
async def assign_roles(
    user_id: str, body: AssignRolesRequest, ctx: AppContext = Depends(get_context)
):
    roles = await ctx.roles.assign_roles_to_user(user_id, body.role_ids)
    return [RoleOut.model_validate(r) for r in roles]


@router.delete(
    "/users/{user_id}/{role_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_privileges("role:update", "user:update"))],
)
async def remove_role(user_id: str, role_id: str, ctx: AppContext = Depends(get_context)):
    await ctx.roles.remove_role_from_user(user_id, role_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/{role_id}",
    response_model=RoleDetail,
    dependencies=[Depends(require_privileges("role:read"))],
)
async def get_role(role_id: str, ctx: AppContext = Depends(get_context)):
    role = await ctx.roles.get_role(role_id)
    count = await ctx.roles.get_user_count(role_id)
    return RoleDetail(**RoleOut.model_validate(role).model_dump(), user_count=count)


@router.patch(
    "/{role_id}",
    response_model=RoleOut,
    dependencies=[Depends(require_privileges("role:update"))],
)
async def update_role(role_id: str, body: RoleUpdate, ctx: AppContext = Depends(get_context)):
    role = await ctx.roles.update_role(
        role_id, name=body.name, description=body.description, is_default=body.is_default
    )
    return RoleOut.model_validate(role)


@router.delete(
    "/{role_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_privileges("role:delete"))],
)
async def delete_role(role_id: str, ctx: AppContext = Depends(get_context)):
    await ctx.roles.delete_role(role_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/{role_id}/privileges",
    response_model=list[PrivilegeOut],
    dependencies=[Depends(require_privileges("role:read"))],
)
async def get_role_privileges(role_id: str, ctx: AppContext = Depends(get_context)):
    return [PrivilegeOut.model_validate(p) for p in await ctx.privileges.get_role_privileges(role_id)]


@router.post(
    "/{role_id}/privileges/{privilege_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_privileges("role:update"))],
)
async def grant_privilege(role_id: str, privilege_id: str, ctx: AppContext = Depends(get_context)):
    await ctx.privileges.assign_privilege_to_role(role_id, privilege_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete(
    "/{role_id}/privileges/{privilege_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_privileges("role:update"))],
)
async def revoke_privilege(role_id: str, privilege_id: str, ctx: AppContext = Depends(get_context)):
    await ctx.privileges.remove_privilege_from_role(role_id, privilege_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ── Privilege catalog ────────────────────────────────────

@privileges_router.get(
    "", response_model=PrivilegePage, dependencies=[Depends(require_privileges("role:read"))]
)
async def list_privileges(
    skip: int = Query(0, ge=0),
    take: int = Query(10, ge=1, le=100),
    search: str | None = None,
    group: str | None = None,
    ctx: AppContext = Depends(get_context),
):
    page = await ctx.privileges.list_privileges(skip=skip, take=take, search=search, group=group)
    return PrivilegePage(
        items=[PrivilegeOut.model_validate(p) for p in page.items],
        total=page.total,
        page=page.page,
        limit=page.limit,
    )


@privileges_router.post(
    "",
    response_model=PrivilegeOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_privileges("system:manage"))],
)
async def create_privilege(body: PrivilegeCreate, ctx: AppContext = Depends(get_context)):
    privilege = await ctx.privileges.create_privilege(
        body.privilege_name, body.privilege_group, body.description
    )
    return PrivilegeOut.model_validate(privilege)


@privileges_router.get(
    "/{privilege_id}",
    response_model=PrivilegeOut,
    dependencies=[Depends(require_privileges("role:read"))],
)
async def get_privilege(privilege_id: str, ctx: AppContext = Depends(get_context)):
    return PrivilegeOut.model_validate(await ctx.privileges.get_privilege(privilege_id))


@privileges_router.patch(
    "/{privilege_id}",
    response_model=PrivilegeOut,
    dependencies=[Depends(require_privileges("system:manage"))],
)
async def update_privilege(
    privilege_id: str, body: PrivilegeUpdate, ctx: AppContext = Depends(get_context)
):
    privilege = await ctx.privileges.update_privilege(
        privilege_id,
        privilege_name=body.privilege_name,
        description=body.description,
        privilege_group=body.privilege_group,
    )
    return PrivilegeOut.model_validate(privilege)


@privileges_router.delete(
    "/{privilege_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_privileges("system:manage"))],
)
async def delete_privilege(privilege_id: str, ctx: AppContext = Depends(get_context)):
    await ctx.privileges.delete_privilege(privilege_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
