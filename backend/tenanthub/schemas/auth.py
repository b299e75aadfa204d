# ruff: noqa: TC003
from __future__ import annotations

import uuid
from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict, EmailStr, Field

from tenanthub.models.enums import UserRole
from tenanthub.schemas.common import CamelModel
from tenanthub.schemas.password import PASSWORD_MIN_LENGTH, check_password_strength
from tenanthub.schemas.user import UserResponse

StrongPassword = Annotated[str, Field(min_length=PASSWORD_MIN_LENGTH), AfterValidator(check_password_strength)]


class IdentityContext(BaseModel):
    """Verified caller identity derived from an access token."""

    model_config = ConfigDict(frozen=True)

    user_id: uuid.UUID
    company_id: uuid.UUID
    role: UserRole


class RegisterRequest(CamelModel):
    """Request body for registering a company and its owner."""

    email: EmailStr
    name: str = Field(min_length=1, max_length=255)
    password: StrongPassword
    company_name: str = Field(min_length=1, max_length=255)


class LoginRequest(CamelModel):
    """Request body for logging in."""

    email: EmailStr
    password: str = Field(min_length=1, max_length=255)


class RefreshRequest(CamelModel):
    """Request body for exchanging a refresh token."""

    refresh_token: str = Field(min_length=1)


class ForgotPasswordRequest(CamelModel):
    """Request body for starting a password reset."""

    email: EmailStr


class ResetPasswordRequest(CamelModel):
    """Request body for completing a password reset."""

    password: StrongPassword


class CompanyResponse(CamelModel):
    """Response schema for a company."""

    id: uuid.UUID
    name: str


class AuthResponse(CamelModel):
    """User plus a fresh token pair."""

    user: UserResponse
    access_token: str
    refresh_token: str


class RegisterResponse(AuthResponse):
    """Registration result: the new owner, their company and tokens."""

    company: CompanyResponse


class AccessTokenResponse(CamelModel):
    """A newly minted access token."""

    access_token: str
