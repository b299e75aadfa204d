# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

import sqlalchemy as sa
from sqlmodel import Field

from tenanthub.models.base import UUIDBase, now_utc


class AuditLog(UUIDBase, table=True):
    """Append-only record of a state-changing action inside a company."""

    __tablename__ = "audit_log"
    __table_args__ = (sa.Index("ix_audit_company_created", "company_id", "created_at"),)

    company_id: uuid.UUID = Field(index=True)
    user_id: uuid.UUID
    action: str = Field(max_length=50, index=True)
    entity: str | None = Field(default=None, max_length=50)
    entity_id: uuid.UUID | None = Field(default=None, sa_type=sa.Uuid)
    # "metadata" is reserved on declarative classes, so the attribute is named
    # details and mapped onto a column called metadata.
    details: dict[str, Any] = Field(
        default_factory=dict,
        sa_column=sa.Column("metadata", sa.JSON, nullable=False),
    )
    created_at: datetime = Field(
        default_factory=now_utc,
        sa_type=sa.DateTime(timezone=True),  # ty: ignore[invalid-argument-type]
        sa_column_kwargs={"server_default": sa.func.now()},
    )
