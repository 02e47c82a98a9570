"""Service layer for the Stats feature."""
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from api.features.conversations.dtos import ConversationStatsDTO
from api.features.conversations.exceptions import ConversationNotFoundError
from api.features.conversations.repository import ConversationRepository
from api.features.messages.dtos import MessageStatsDTO
from api.features.messages.repository import MessageRepository
from api.features.stats.dtos import ConversationStatsResponse, GlobalStatsDTO


class StatsService:
    """Read-only aggregate queries."""

    async def global_stats(
        self, *, user_id: Optional[int], db_session: AsyncSession
    ) -> GlobalStatsDTO:
        conversations = await ConversationRepository(db_session).get_stats(user_id=user_id)
        messages = await MessageRepository(db_session).get_stats()
        return GlobalStatsDTO(
            conversations=ConversationStatsDTO.model_validate(conversations),
            messages=MessageStatsDTO.model_validate(messages),
        )

    async def conversation_stats(
        self, conversation_id: int, *, db_session: AsyncSession
    ) -> ConversationStatsResponse:
        conversation_repository = ConversationRepository(db_session)
        if not await conversation_repository.exists(conversation_id):
            raise ConversationNotFoundError(conversation_id)

        conversation = await conversation_repository.get_stats(
            conversation_id=conversation_id
        )
        messages = await MessageRepository(db_session).get_stats(
            conversation_id=conversation_id
        )
        return ConversationStatsResponse(
            conversation=ConversationStatsDTO.model_validate(conversation),
            messages=MessageStatsDTO.model_validate(messages),
        )
