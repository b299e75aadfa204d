# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from tenanthub.schemas.common import CamelModel


class AuditLogEntryResponse(CamelModel):
    """Response schema for a single audit log entry."""

    id: uuid.UUID
    user_id: uuid.UUID
    company_id: uuid.UUID
    action: str
    entity: str | None
    entity_id: uuid.UUID | None
    metadata: dict[str, Any]
    created_at: datetime
