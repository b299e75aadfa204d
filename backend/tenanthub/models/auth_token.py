# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import datetime

import sqlalchemy as sa
from sqlmodel import Field

from tenanthub.models.base import TimestampMixin, UUIDBase


class AuthToken(UUIDBase, TimestampMixin, table=True):
    """Server-side state for refresh sessions and one-time email tokens.

    Only a keyed digest of the token is stored. ``consumed_at`` is set when a
    one-time token is redeemed or a refresh session is revoked.
    """

    __tablename__ = "auth_token"
    __table_args__ = (sa.Index("ix_auth_token_user_purpose", "user_id", "purpose"),)

    user_id: uuid.UUID = Field(
        sa_column=sa.Column(
            sa.Uuid, sa.ForeignKey("app_user.id", ondelete="CASCADE"), nullable=False
        ),
    )
    purpose: str = Field(max_length=30)
    token_hash: str = Field(max_length=64, unique=True, index=True)
    expires_at: datetime = Field(sa_type=sa.DateTime(timezone=True))  # ty: ignore[invalid-argument-type]
    consumed_at: datetime | None = Field(
        default=None,
        sa_type=sa.DateTime(timezone=True),  # ty: ignore[invalid-argument-type]
    )
