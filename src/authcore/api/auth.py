"""Auth router — registration, login, tokens, verification and passwords.

Endpoints
---------
POST /auth/register          → create account, returns user + token pair
POST /auth/login             → email or phone + password
POST /auth/logout            → revoke the bearer access token and a refresh token
POST /auth/refresh           → rotate a refresh token into a new pair
POST /auth/verify            → confirm email or phone with a registration code
POST /auth/otp               → (re)send a code for a purpose
POST /auth/password/reset    → set a new password with a reset code
POST /auth/password/change   → change password knowing the current one
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel

from authcore.api.deps import get_bearer_token, get_context, get_current_claims
from authcore.context import AppContext
from authcore.services.token_manager import TokenClaims, TokenPair
from authcore.services.types import AuthResult, UserView

router = APIRouter(prefix="/auth", tags=["auth"])


# ── Request models ───────────────────────────────────────

class RegisterRequest(BaseModel):
    full_name: str
    email: str
    phone_number: str
    password: str
    is_passphrase: bool = False


class LoginRequest(BaseModel):
    identifier: str
    password: str


class RefreshRequest(BaseModel):
    refresh_token: str


class VerifyRequest(BaseModel):
    code: str
    channel: str


class OtpRequest(BaseModel):
    identifier: str
    purpose: str


class ResetPasswordRequest(BaseModel):
    user_id: str
    code: str
    new_password: str
    identifier: str | None = None
    is_passphrase: bool = False


class ChangePasswordRequest(BaseModel):
    old_password: str
    new_password: str
    is_passphrase: bool = False


class MessageResponse(BaseModel):
    message: str


# ── Endpoints ────────────────────────────────────────────

@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(body: RegisterRequest, ctx: AppContext = Depends(get_context)) -> AuthResult:
    return await ctx.auth.register(
        body.full_name,
        body.email,
        body.phone_number,
        body.password,
        is_passphrase=body.is_passphrase,
    )


@router.post("/login")
async def login(body: LoginRequest, ctx: AppContext = Depends(get_context)) -> AuthResult:
    return await ctx.auth.login(body.identifier, body.password)


@router.post("/logout", response_model=MessageResponse)
async def logout(
    body: RefreshRequest,
    access_token: str = Depends(get_bearer_token),
    claims: TokenClaims = Depends(get_current_claims),
    ctx: AppContext = Depends(get_context),
):
    await ctx.auth.logout(access_token, body.refresh_token, claims.user_id)
    return {"message": "Logged out"}


@router.post("/refresh")
async def refresh(body: RefreshRequest, ctx: AppContext = Depends(get_context)) -> TokenPair:
    return await ctx.auth.refresh(body.refresh_token)


@router.post("/verify")
async def verify(
    body: VerifyRequest,
    claims: TokenClaims = Depends(get_current_claims),
    ctx: AppContext = Depends(get_context),
) -> UserView:
    return await ctx.auth.verify_account(claims.user_id, body.code, body.channel)


@router.post("/otp", status_code=status.HTTP_202_ACCEPTED, response_model=MessageResponse)
async def request_otp(body: OtpRequest, ctx: AppContext = Depends(get_context)):
    await ctx.auth.request_otp(body.identifier, body.purpose)
    # Same answer whether or not the identifier is registered.
    return {"message": "If the account exists, a code has been sent"}


@router.post("/password/reset", response_model=MessageResponse)
async def reset_password(body: ResetPasswordRequest, ctx: AppContext = Depends(get_context)):
    await ctx.auth.reset_password(
        body.user_id,
        body.code,
        body.new_password,
        body.identifier,
        is_passphrase=body.is_passphrase,
    )
    return {"message": "Password has been reset"}


@router.post("/password/change", response_model=MessageResponse)
async def change_password(
    body: ChangePasswordRequest,
    claims: TokenClaims = Depends(get_current_claims),
    ctx: AppContext = Depends(get_context),
):
    await ctx.auth.change_password(
        claims.user_id, body.old_password, body.new_password, is_passphrase=body.is_passphrase
    )
    return {"message": "Password has been changed"}
