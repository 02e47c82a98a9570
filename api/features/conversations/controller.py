"""Controller for the Conversations feature."""
import logging
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from api.features.conversations.dtos import ConversationDTO, ConversationTitleRequest
from api.features.conversations.service import ConversationService
from api.shared.dtos import PaginationMeta
from api.shared.exceptions import ValidationError
from api.shared.response import ResponseModel

logger = logging.getLogger("agrichat.conversations")


class ConversationController:
    """Controller handling conversation CRUD and search."""

    def __init__(self, conversation_service: ConversationService):
        self.conversation_service = conversation_service

    async def create_conversation(
        self, request: ConversationTitleRequest, *, db_session: AsyncSession
    ) -> ResponseModel[ConversationDTO]:
        conversation = await self.conversation_service.create_conversation(
            request.title, db_session=db_session
        )
        return ResponseModel.ok(data=conversation)

    async def list_conversations(
        self,
        *,
        user_id: Optional[int],
        limit: int,
        offset: int,
        db_session: AsyncSession,
    ) -> ResponseModel[List[ConversationDTO]]:
        items = await self.conversation_service.list_conversations(
            user_id=user_id, limit=limit, offset=offset, db_session=db_session
        )
        return ResponseModel.ok(
            data=items,
            pagination=PaginationMeta(limit=limit, offset=offset, count=len(items)),
        )

    async def get_conversation(
        self, conversation_id: int, *, db_session: AsyncSession
    ) -> ResponseModel[ConversationDTO]:
        conversation = await self.conversation_service.get_conversation(
            conversation_id, db_session=db_session
        )
        return ResponseModel.ok(data=conversation)

    async def update_conversation(
        self,
        conversation_id: int,
        request: ConversationTitleRequest,
        *,
        db_session: AsyncSession,
    ) -> ResponseModel[ConversationDTO]:
        conversation = await self.conversation_service.update_title(
            conversation_id, request.title, db_session=db_session
        )
        return ResponseModel.ok(
            data=conversation, message="Conversation title updated successfully"
        )

    async def delete_conversation(
        self, conversation_id: int, *, db_session: AsyncSession
    ) -> ResponseModel[None]:
        await self.conversation_service.delete_conversation(
            conversation_id, db_session=db_session
        )
        return ResponseModel.ok(message="Conversation deleted successfully")

    async def search_conversations(
        self,
        query: str,
        *,
        user_id: Optional[int],
        limit: int,
        db_session: AsyncSession,
    ) -> ResponseModel[List[ConversationDTO]]:
        query = query.strip()
        if not query:
            raise ValidationError("Search query is required")
        items = await self.conversation_service.search_conversations(
            query, user_id=user_id, limit=limit, db_session=db_session
        )
        logger.info("Conversation search %r matched %d", query, len(items))
        return ResponseModel.ok(data=items, query=query, count=len(items))
