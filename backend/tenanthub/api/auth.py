# ruff: noqa: TC001
from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Path, status

from tenanthub.api.deps import EmailSenderDep, IdentityDep
from tenanthub.cache import cache_control
from tenanthub.db import SessionDep
from tenanthub.schemas.auth import (
    AccessTokenResponse,
    AuthResponse,
    ForgotPasswordRequest,
    LoginRequest,
    RefreshRequest,
    RegisterRequest,
    RegisterResponse,
    ResetPasswordRequest,
)
from tenanthub.schemas.common import ApiResponse, ok
from tenanthub.schemas.user import UserResponse
from tenanthub.services import auth as auth_service

auth_router = APIRouter(
    prefix="/auth",
    tags=["auth"],
    dependencies=[Depends(cache_control(max_age=0))],
)

TokenPath = Annotated[str, Path(min_length=1, max_length=512)]


@auth_router.post("/register", response_model=ApiResponse[RegisterResponse], status_code=status.HTTP_201_CREATED)
async def register(
    payload: RegisterRequest,
    session: SessionDep,
    email_sender: EmailSenderDep,
) -> ApiResponse[RegisterResponse]:
    """Create a company and its owner account."""
    result = await auth_service.register(session, payload, email_sender)
    return ok("Registration successful", result)


@auth_router.post("/login", response_model=ApiResponse[AuthResponse])
async def login(payload: LoginRequest, session: SessionDep) -> ApiResponse[AuthResponse]:
    """Exchange credentials for an access and refresh token."""
    result = await auth_service.login(session, payload.email, payload.password)
    return ok("Login successful", result)


@auth_router.post("/refresh", response_model=ApiResponse[AccessTokenResponse])
async def refresh(payload: RefreshRequest, session: SessionDep) -> ApiResponse[AccessTokenResponse]:
    """Mint a new access token from a refresh token."""
    result = await auth_service.refresh(session, payload.refresh_token)
    return ok("Token refreshed successfully", result)


@auth_router.get("/me", response_model=ApiResponse[UserResponse])
async def me(session: SessionDep, identity: IdentityDep) -> ApiResponse[UserResponse]:
    """Return the authenticated user."""
    user = await auth_service.me(session, identity)
    return ok("User retrieved successfully", user)


@auth_router.post("/logout", response_model=ApiResponse[None])
async def logout(session: SessionDep, identity: IdentityDep) -> ApiResponse[None]:
    """End the caller's refresh sessions."""
    await auth_service.logout(session, identity)
    return ok("Logged out successfully")


@auth_router.get("/verify-email/{token}", response_model=ApiResponse[UserResponse])
async def verify_email(session: SessionDep, token: TokenPath) -> ApiResponse[UserResponse]:
    """Confirm an email address from the emailed token."""
    user = await auth_service.verify_email(session, token)
    return ok("Email verified successfully", user)


@auth_router.post("/forgot-password", response_model=ApiResponse[None])
async def forgot_password(
    payload: ForgotPasswordRequest,
    session: SessionDep,
    email_sender: EmailSenderDep,
) -> ApiResponse[None]:
    """Start a password reset. The response never reveals whether the email exists."""
    await auth_service.forgot_password(session, payload.email, email_sender)
    return ok(auth_service.FORGOT_PASSWORD_MESSAGE)


@auth_router.post("/reset-password/{token}", response_model=ApiResponse[None])
async def reset_password(
    payload: ResetPasswordRequest,
    session: SessionDep,
    token: TokenPath,
) -> ApiResponse[None]:
    """Set a new password using the emailed token."""
    await auth_service.reset_password(session, token, payload.password)
    return ok("Password reset successfully")
