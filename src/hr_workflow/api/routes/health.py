"""Health, readiness and liveness endpoints."""

import logging
from datetime import datetime

from fastapi import APIRouter, Request, Response, status
from pydantic import BaseModel
from sqlalchemy import select, text

from hr_workflow import __version__
from hr_workflow.api.dependencies import DbSession
from hr_workflow.models import AuditEntry

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    status: str
    version: str
    timestamp: datetime
    database: str
    workflows: list[str]


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request, db: DbSession) -> HealthResponse:
    """Database reachability plus the workflows this engine serves."""
    orchestrator = request.app.state.orchestrator
    database = "healthy"
    try:
        await db.execute(text("SELECT 1"))
    except Exception:
        logger.warning("Database health check failed", exc_info=True)
        database = "unhealthy"

    return HealthResponse(
        status="healthy" if database == "healthy" else "degraded",
        version=__version__,
        timestamp=orchestrator.clock(),
        database=database,
        workflows=sorted(entity_type.value for entity_type in orchestrator.machines),
    )


@router.get("/ready")
async def readiness_check(db: DbSession, response: Response) -> dict[str, str]:
    """Ready once the schema is in place, since every mutation writes the audit log."""
    try:
        await db.execute(select(AuditEntry.audit_entry_id).limit(1))
    except Exception:
        logger.warning("Audit log table unavailable", exc_info=True)
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return {"status": "not ready"}
    return {"status": "ready"}


@router.get("/live")
async def liveness_check() -> dict[str, str]:
    return {"status": "alive"}
