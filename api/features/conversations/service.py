"""Service layer for the Conversations feature."""
from typing import List, Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from api.features.conversations.dtos import ConversationDTO
from api.features.conversations.exceptions import ConversationNotFoundError
from api.features.conversations.repository import ConversationRepository

logger = structlog.get_logger("agrichat.conversations.service")


class ConversationService:
    """Conversation operations; commits after every successful write."""

    async def create_conversation(
        self, title: str, *, user_id: Optional[int] = None, db_session: AsyncSession
    ) -> ConversationDTO:
        repository = ConversationRepository(db_session)
        entity = await repository.create_conversation(title, user_id=user_id)
        await db_session.commit()
        return ConversationDTO(
            id=entity.id,
            user_id=entity.user_id,
            title=entity.title,
            created_at=entity.created_at,
            updated_at=entity.updated_at,
            message_count=0,
            last_message_time=None,
        )

    async def get_conversation(
        self, conversation_id: int, *, db_session: AsyncSession
    ) -> ConversationDTO:
        repository = ConversationRepository(db_session)
        row = await repository.find_by_id(conversation_id)
        if row is None:
            raise ConversationNotFoundError(conversation_id)
        return ConversationDTO.model_validate(row)

    async def list_conversations(
        self,
        *,
        user_id: Optional[int],
        limit: int,
        offset: int,
        db_session: AsyncSession,
    ) -> List[ConversationDTO]:
        repository = ConversationRepository(db_session)
        rows = await repository.find_all(user_id=user_id, limit=limit, offset=offset)
        return [ConversationDTO.model_validate(r) for r in rows]

    async def update_title(
        self, conversation_id: int, title: str, *, db_session: AsyncSession
    ) -> ConversationDTO:
        repository = ConversationRepository(db_session)
        if not await repository.update_title(conversation_id, title):
            raise ConversationNotFoundError(conversation_id)
        await db_session.commit()
        logger.info("conversation.renamed", conversation_id=conversation_id)
        return await self.get_conversation(conversation_id, db_session=db_session)

    async def delete_conversation(
        self, conversation_id: int, *, db_session: AsyncSession
    ) -> None:
        """Delete a conversation; its messages go with it via ON DELETE CASCADE."""
        repository = ConversationRepository(db_session)
        if not await repository.delete(conversation_id):
            raise ConversationNotFoundError(conversation_id)
        await db_session.commit()
        logger.info("conversation.deleted", conversation_id=conversation_id)

    async def search_conversations(
        self,
        query: str,
        *,
        user_id: Optional[int],
        limit: int,
        db_session: AsyncSession,
    ) -> List[ConversationDTO]:
        repository = ConversationRepository(db_session)
        rows = await repository.search(query, user_id=user_id, limit=limit)
        return [ConversationDTO.model_validate(r) for r in rows]
