"""Controller for the Stats feature."""
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from api.features.stats.dtos import ConversationStatsResponse, GlobalStatsDTO
from api.features.stats.service import StatsService
from api.shared.response import ResponseModel


class StatsController:
    def __init__(self, stats_service: StatsService):
        self.stats_service = stats_service

    async def global_stats(
        self, *, user_id: Optional[int], db_session: AsyncSession
    ) -> ResponseModel[GlobalStatsDTO]:
        stats = await self.stats_service.global_stats(user_id=user_id, db_session=db_session)
        return ResponseModel.ok(data=stats)

    async def conversation_stats(
        self, conversation_id: int, *, db_session: AsyncSession
    ) -> ResponseModel[ConversationStatsResponse]:
        stats = await self.stats_service.conversation_stats(
            conversation_id, db_session=db_session
        )
        return ResponseModel.ok(data=stats)
