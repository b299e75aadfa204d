from __future__ import annotations

from sqlmodel import Field

from tenanthub.models.base import TimestampMixin, UUIDBase


class Company(UUIDBase, TimestampMixin, table=True):
    """A tenant. Every user and audit entry belongs to exactly one company."""

    __tablename__ = "company"

    name: str = Field(max_length=255)
