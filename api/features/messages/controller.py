"""Controller for the Messages feature."""
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from api.features.messages.dtos import (
    AppendMessageRequest,
    MessageDTO,
    MessageSearchResultDTO,
    UpdateMessageRequest,
)
from api.features.messages.service import MessageService
from api.shared.dtos import PaginationMeta
from api.shared.exceptions import ValidationError
from api.shared.response import ResponseModel


class MessageController:
    """Controller handling message append, listing, edit and search."""

    def __init__(self, message_service: MessageService):
        self.message_service = message_service

    async def append_message(
        self,
        conversation_id: int,
        request: AppendMessageRequest,
        *,
        db_session: AsyncSession,
    ) -> ResponseModel[MessageDTO]:
        message = await self.message_service.append_message(
            conversation_id, request.content, request.type, db_session=db_session
        )
        return ResponseModel.ok(data=message)

    async def list_messages(
        self,
        conversation_id: int,
        *,
        limit: int,
        offset: int,
        db_session: AsyncSession,
    ) -> ResponseModel[List[MessageDTO]]:
        items = await self.message_service.list_messages(
            conversation_id, limit=limit, offset=offset, db_session=db_session
        )
        return ResponseModel.ok(
            data=items,
            pagination=PaginationMeta(limit=limit, offset=offset, count=len(items)),
        )

    async def recent_messages(
        self, conversation_id: int, *, count: int, db_session: AsyncSession
    ) -> ResponseModel[List[MessageDTO]]:
        items = await self.message_service.recent_messages(
            conversation_id, count=count, db_session=db_session
        )
        return ResponseModel.ok(data=items, count=len(items))

    async def get_message(
        self, message_id: int, *, db_session: AsyncSession
    ) -> ResponseModel[MessageDTO]:
        message = await self.message_service.get_message(message_id, db_session=db_session)
        return ResponseModel.ok(data=message)

    async def update_message(
        self,
        message_id: int,
        request: UpdateMessageRequest,
        *,
        db_session: AsyncSession,
    ) -> ResponseModel[MessageDTO]:
        message = await self.message_service.update_message(
            message_id, request.content, db_session=db_session
        )
        return ResponseModel.ok(data=message, message="Message updated successfully")

    async def delete_message(
        self, message_id: int, *, db_session: AsyncSession
    ) -> ResponseModel[None]:
        await self.message_service.delete_message(message_id, db_session=db_session)
        return ResponseModel.ok(message="Message deleted successfully")

    async def search_messages(
        self,
        query: str,
        *,
        conversation_id: Optional[int],
        limit: int,
        db_session: AsyncSession,
    ) -> ResponseModel[List[MessageSearchResultDTO]]:
        query = query.strip()
        if not query:
            raise ValidationError("Search query is required")
        items = await self.message_service.search_messages(
            query, conversation_id=conversation_id, limit=limit, db_session=db_session
        )
        return ResponseModel.ok(data=items, query=query, count=len(items))
