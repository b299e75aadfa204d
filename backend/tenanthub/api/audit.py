# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query

from tenanthub.api.deps import IdentityDep, get_identity
from tenanthub.cache import cache_control
from tenanthub.db import SessionDep
from tenanthub.schemas.audit import AuditLogEntryResponse
from tenanthub.schemas.common import ApiResponse, ok
from tenanthub.services import audit as audit_service

audit_router = APIRouter(
    prefix="/audit",
    tags=["audit"],
    dependencies=[Depends(cache_control()), Depends(get_identity)],
)


@audit_router.get("", response_model=ApiResponse[list[AuditLogEntryResponse]])
async def get_audit_logs(
    session: SessionDep,
    identity: IdentityDep,
    from_date: date | None = Query(default=None, alias="from"),
    to_date: date | None = Query(default=None, alias="to"),
    action: str | None = Query(default=None, max_length=50),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=500),
) -> ApiResponse[list[AuditLogEntryResponse]]:
    """Query the caller's company audit log, newest first."""
    entries = await audit_service.query_audit_logs(
        session,
        identity.company_id,
        from_date=from_date,
        to_date=to_date,
        action=action,
        offset=offset,
        limit=limit,
    )
    return ok("Audit logs retrieved successfully", entries)
