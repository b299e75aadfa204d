# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import UTC, date, datetime, time, timedelta
from typing import TYPE_CHECKING, Any

from sqlalchemy import select
from sqlmodel import col

from tenanthub.exceptions import FieldError, InputValidationError
from tenanthub.models.audit import AuditLog
from tenanthub.schemas.audit import AuditLogEntryResponse

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession
    from sqlmodel import SQLModel

    from tenanthub.models.enums import AuditAction, AuditEntity

_SENSITIVE_FIELDS = frozenset({"password_hash"})


def model_to_audit_dict(model: SQLModel) -> dict[str, Any]:
    """Serialize a SQLModel instance to a JSON-safe dict, dropping secrets."""
    data: dict[str, Any] = {}
    for key, value in model.model_dump().items():
        if key in _SENSITIVE_FIELDS:
            continue
        if isinstance(value, uuid.UUID):
            data[key] = str(value)
        elif isinstance(value, (datetime, date)):
            data[key] = value.isoformat()
        else:
            data[key] = value
    return data


async def write_audit_log(
    session: AsyncSession,
    *,
    company_id: uuid.UUID,
    user_id: uuid.UUID,
    action: AuditAction,
    entity: AuditEntity | None = None,
    entity_id: uuid.UUID | None = None,
    metadata: dict[str, Any] | None = None,
) -> AuditLog:
    """Append an audit log entry within the caller's transaction."""
    entry = AuditLog(
        company_id=company_id,
        user_id=user_id,
        action=action.value,
        entity=entity.value if entity is not None else None,
        entity_id=entity_id,
        details=metadata or {},
    )
    session.add(entry)
    return entry


def _to_entry_response(entry: AuditLog) -> AuditLogEntryResponse:
    return AuditLogEntryResponse(
        id=entry.id,
        user_id=entry.user_id,
        company_id=entry.company_id,
        action=entry.action,
        entity=entry.entity,
        entity_id=entry.entity_id,
        metadata=entry.details,
        created_at=entry.created_at,
    )


async def query_audit_logs(
    session: AsyncSession,
    company_id: uuid.UUID,
    *,
    from_date: date | None = None,
    to_date: date | None = None,
    action: str | None = None,
    offset: int = 0,
    limit: int = 100,
) -> list[AuditLogEntryResponse]:
    """Return a company's audit entries, newest first.

    ``from_date`` and ``to_date`` are inclusive calendar days in UTC.
    """
    if from_date is not None and to_date is not None and from_date > to_date:
        raise InputValidationError(
            "Invalid date range",
            details=[FieldError(field="from", message="must not be after 'to'")],
        )

    filters = [col(AuditLog.company_id) == company_id]
    if from_date is not None:
        filters.append(col(AuditLog.created_at) >= datetime.combine(from_date, time.min, tzinfo=UTC))
    if to_date is not None:
        end = datetime.combine(to_date + timedelta(days=1), time.min, tzinfo=UTC)
        filters.append(col(AuditLog.created_at) < end)
    if action is not None:
        filters.append(col(AuditLog.action) == action)

    result = await session.execute(
        select(AuditLog).where(*filters).order_by(col(AuditLog.created_at).desc()).offset(offset).limit(limit)
    )
    return [_to_entry_response(e) for e in result.scalars().all()]
