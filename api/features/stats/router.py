"""Router for the Stats feature."""
from typing import Optional

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from api.features.stats.controller import StatsController
from api.features.stats.dtos import ConversationStatsResponse, GlobalStatsDTO
from api.shared.db import get_db_session
from api.shared.response import ResponseModel
from core.constants import MAX_DB_ID
from di.container import ApplicationContainer as DependencyContainer

router = APIRouter()


@router.get(
    "/stats",
    response_model=ResponseModel[GlobalStatsDTO],
    response_model_exclude_unset=True,
)
@inject
async def global_stats(
    user_id: Optional[int] = Query(
        None, ge=1, le=MAX_DB_ID, description="Filter by owning user"
    ),
    controller: StatsController = Depends(
        Provide[DependencyContainer.controllers.stats_controller]
    ),
    db_session: AsyncSession = Depends(get_db_session),
):
    return await controller.global_stats(user_id=user_id, db_session=db_session)


@router.get(
    "/conversations/{conversation_id}/stats",
    response_model=ResponseModel[ConversationStatsResponse],
    response_model_exclude_unset=True,
)
@inject
async def conversation_stats(
    conversation_id: int = Path(ge=1, le=MAX_DB_ID),
    controller: StatsController = Depends(
        Provide[DependencyContainer.controllers.stats_controller]
    ),
    db_session: AsyncSession = Depends(get_db_session),
):
    return await controller.conversation_stats(conversation_id, db_session=db_session)
