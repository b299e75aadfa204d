# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import datetime

import sqlalchemy as sa
from sqlmodel import Field

from tenanthub.models.base import TimestampMixin, UpdatedAtMixin, UUIDBase
from tenanthub.models.enums import UserRole


class User(UUIDBase, TimestampMixin, UpdatedAtMixin, table=True):
    """A company member who can authenticate against the API."""

    __tablename__ = "app_user"

    company_id: uuid.UUID = Field(
        sa_column=sa.Column(
            sa.Uuid, sa.ForeignKey("company.id", ondelete="CASCADE"), nullable=False, index=True
        ),
    )
    name: str = Field(max_length=255)
    email: str = Field(max_length=255, unique=True, index=True)
    password_hash: str = Field(max_length=255)
    role: str = Field(default=UserRole.USER.value, max_length=20)
    email_verified_at: datetime | None = Field(
        default=None,
        sa_type=sa.DateTime(timezone=True),  # ty: ignore[invalid-argument-type]
    )
