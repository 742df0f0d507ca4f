"""Liveness, readiness and health endpoints."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Response, status
from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from expense_desk.api.dependencies import DbSession
from expense_desk.models import ReportSequence, Tier
from expense_desk.services.sequence import REPORT_SEQUENCE, SequenceService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    status: str
    timestamp: datetime
    database: str
    next_report_label: str | None = None


class ReadinessResponse(BaseModel):
    """Readiness verdict with the state of each check.

    ``tiers`` counts configured policy tiers; ``report_sequence`` is
    ``seeded`` once the first report number has been handed out.
    """

    status: str
    checks: dict[str, str]


@router.get("/health", response_model=HealthResponse)
async def health_check(db: DbSession) -> HealthResponse:
    """Report database reachability and the label the next report gets."""
    try:
        label = await SequenceService(db).peek_report_label()
    except SQLAlchemyError:
        logger.warning("Database health check failed", exc_info=True)
        return HealthResponse(
            status="degraded",
            timestamp=datetime.now(timezone.utc),
            database="unhealthy",
        )

    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc),
        database="healthy",
        next_report_label=label,
    )


@router.get("/ready", response_model=ReadinessResponse)
async def readiness_check(db: DbSession, response: Response) -> ReadinessResponse:
    """Ready once the schema answers and at least one tier is configured.

    Reports cannot pass policy checks without a tier, so an empty tier
    table means the deployment has not been seeded yet.
    """
    checks: dict[str, str] = {}
    try:
        tiers = await db.scalar(select(func.count()).select_from(Tier)) or 0
        counter = await db.scalar(
            select(ReportSequence.value).where(ReportSequence.name == REPORT_SEQUENCE)
        )
    except SQLAlchemyError:
        logger.warning("Readiness check could not query the schema", exc_info=True)
        checks["database"] = "unreachable"
    else:
        checks["database"] = "ok"
        checks["tiers"] = str(tiers) if tiers else "missing"
        checks["report_sequence"] = "seeded" if counter is not None else "unseeded"

    ready = checks["database"] == "ok" and checks["tiers"] != "missing"
    if not ready:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return ReadinessResponse(status="ready" if ready else "not_ready", checks=checks)


@router.get("/live")
async def liveness_check() -> dict[str, str]:
    return {"status": "alive"}
