"""Liveness endpoint reporting database reachability."""
import logging
from datetime import datetime, timezone

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from api.shared.dtos import HealthCheckResponse
from api.shared.response import ResponseModel
from di.container import ApplicationContainer as DependencyContainer
from infra.resources import DatabaseResource

logger = logging.getLogger("agrichat.health")

router = APIRouter()


@router.get("/health", response_model=ResponseModel[HealthCheckResponse])
@inject
async def health_check(
    db: DatabaseResource = Depends(Provide[DependencyContainer.infrastructure.database]),
):
    database = await db.health_check()
    healthy = database["status"] == "healthy"
    body = ResponseModel.ok(
        data=HealthCheckResponse(
            status="healthy" if healthy else "degraded",
            timestamp=datetime.now(timezone.utc),
            database=database,
        )
    )
    if not healthy:
        logger.warning("Health check degraded: %s", database.get("error"))
    return JSONResponse(
        status_code=200 if healthy else 503,
        content=body.model_dump(mode="json", exclude_none=True),
    )
