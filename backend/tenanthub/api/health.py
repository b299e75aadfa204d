import logging
from typing import Literal

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import text

from tenanthub.cache import cache_control
from tenanthub.config import get_settings
from tenanthub.db import SessionDep

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"], dependencies=[Depends(cache_control(max_age=0))])


class HealthResponse(BaseModel):
    """Liveness and database reachability of the API process."""

    status: Literal["ok", "degraded"]
    database: Literal["up", "down"]
    version: str
    environment: str


@router.get("/health", response_model=HealthResponse)
async def health(session: SessionDep) -> HealthResponse:
    """Report whether the API can reach its database."""
    settings = get_settings()
    try:
        await session.execute(text("SELECT 1"))
        database: Literal["up", "down"] = "up"
    except Exception:
        logger.exception("Health check: database connectivity failed")
        database = "down"

    return HealthResponse(
        status="ok" if database == "up" else "degraded",
        database=database,
        version=settings.app_version,
        environment=settings.environment,
    )
