# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Annotated, Literal

from pydantic import AfterValidator, ConfigDict, EmailStr, Field

from tenanthub.schemas.common import CamelModel
from tenanthub.schemas.password import PASSWORD_MIN_LENGTH, check_password_strength

AssignableRole = Literal["ADMIN", "USER"]


class CreateUserRequest(CamelModel):
    """Request body for adding a user to the caller's company."""

    name: str = Field(min_length=1, max_length=255)
    email: EmailStr
    password: Annotated[str, Field(min_length=PASSWORD_MIN_LENGTH), AfterValidator(check_password_strength)]
    role: AssignableRole = "USER"


class UpdateUserRequest(CamelModel):
    """Partial update; only fields present in the body are applied."""

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, min_length=1, max_length=255)
    email: EmailStr | None = None
    role: AssignableRole | None = None


class UserResponse(CamelModel):
    """Sanitized user record. Never carries password material."""

    id: uuid.UUID
    company_id: uuid.UUID
    name: str
    email: str
    role: str
    email_verified: bool
    created_at: datetime
    updated_at: datetime
