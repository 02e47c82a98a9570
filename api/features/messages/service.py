"""Service layer for the Messages feature."""
from typing import List, Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from api.features.conversations.exceptions import ConversationNotFoundError
from api.features.conversations.repository import ConversationRepository
from api.features.messages.dtos import MessageDTO, MessageSearchResultDTO
from api.features.messages.entities.message import MessageType
from api.features.messages.exceptions import MessageNotFoundError
from api.features.messages.repository import MessageRepository

logger = structlog.get_logger("agrichat.messages.service")


class MessageService:
    """Message operations scoped to existing conversations."""

    async def _require_conversation(
        self, conversation_id: int, db_session: AsyncSession
    ) -> None:
        if not await ConversationRepository(db_session).exists(conversation_id):
            raise ConversationNotFoundError(conversation_id)

    async def append_message(
        self,
        conversation_id: int,
        content: str,
        message_type: MessageType,
        *,
        db_session: AsyncSession,
    ) -> MessageDTO:
        await self._require_conversation(conversation_id, db_session)
        repository = MessageRepository(db_session)
        entity = await repository.create_message(conversation_id, content, message_type)
        await db_session.commit()
        logger.info(
            "message.appended",
            conversation_id=conversation_id,
            message_id=entity.id,
            type=message_type.value,
        )
        return MessageDTO.model_validate(entity)

    async def list_messages(
        self,
        conversation_id: int,
        *,
        limit: int,
        offset: int,
        db_session: AsyncSession,
    ) -> List[MessageDTO]:
        await self._require_conversation(conversation_id, db_session)
        repository = MessageRepository(db_session)
        entities = await repository.find_by_conversation_id(
            conversation_id, limit=limit, offset=offset
        )
        return [MessageDTO.model_validate(e) for e in entities]

    async def recent_messages(
        self, conversation_id: int, *, count: int, db_session: AsyncSession
    ) -> List[MessageDTO]:
        await self._require_conversation(conversation_id, db_session)
        repository = MessageRepository(db_session)
        entities = await repository.get_recent_messages(conversation_id, count=count)
        return [MessageDTO.model_validate(e) for e in entities]

    async def get_message(
        self, message_id: int, *, db_session: AsyncSession
    ) -> MessageDTO:
        entity = await MessageRepository(db_session).find_by_id(message_id)
        if entity is None:
            raise MessageNotFoundError(message_id)
        return MessageDTO.model_validate(entity)

    async def update_message(
        self, message_id: int, content: str, *, db_session: AsyncSession
    ) -> MessageDTO:
        repository = MessageRepository(db_session)
        if not await repository.update(message_id, content):
            raise MessageNotFoundError(message_id)
        await db_session.commit()
        entity = await repository.find_by_id(message_id)
        if entity is None:
            raise MessageNotFoundError(message_id)
        return MessageDTO.model_validate(entity)

    async def delete_message(self, message_id: int, *, db_session: AsyncSession) -> None:
        if not await MessageRepository(db_session).delete(message_id):
            raise MessageNotFoundError(message_id)
        await db_session.commit()
        logger.info("message.deleted", message_id=message_id)

    async def search_messages(
        self,
        query: str,
        *,
        conversation_id: Optional[int],
        limit: int,
        db_session: AsyncSession,
    ) -> List[MessageSearchResultDTO]:
        rows = await MessageRepository(db_session).search(
            query, conversation_id=conversation_id, limit=limit
        )
        return [MessageSearchResultDTO.model_validate(r) for r in rows]
