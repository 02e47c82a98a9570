"""Repository for message persistence operations."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

import structlog
from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from api.features.conversations.entities.conversation import Conversation
from api.features.conversations.repository import ConversationRepository
from api.features.messages.entities.message import Message, MessageType
from api.shared.base import BaseRepository
from api.shared.entities.base import utc_now
from api.shared.utils import LIKE_ESCAPE_CHAR, contains_pattern

logger = structlog.get_logger("agrichat.messages.repository")


class MessageRepository(BaseRepository[Message]):
    """Repository for message entities."""

    model = Message

    def __init__(self, session: AsyncSession):
        super().__init__(session)
        self.conversations = ConversationRepository(session)

    async def create_message(
        self, conversation_id: int, content: str, message_type: MessageType
    ) -> Message:
        message = Message(
            conversation_id=conversation_id,
            content=content,
            type=message_type,
            timestamp=utc_now(),
        )
        message = await self.create(message)
        await self.touch_conversation(conversation_id)
        return message

    async def touch_conversation(self, conversation_id: int) -> None:
        """Best-effort updated_at bump; failures are logged, never raised.

        Runs in a SAVEPOINT so a failed UPDATE leaves the surrounding
        transaction (and the inserted message) usable.
        """
        try:
            async with self.session.begin_nested():
                await self.conversations.touch(conversation_id)
        except Exception as e:
            logger.warning(
                "conversation.touch.failed",
                conversation_id=conversation_id,
                error=str(e),
            )

    async def find_by_id(self, message_id: int) -> Optional[Message]:
        return await self.get_by_id(message_id)

    async def find_by_conversation_id(
        self, conversation_id: int, *, limit: int = 100, offset: int = 0
    ) -> List[Message]:
        """Messages in chronological order."""
        stmt = (
            select(Message)
            .where(Message.conversation_id == conversation_id)
            .order_by(Message.timestamp.asc(), Message.id.asc())
            .limit(limit)
            .offset(offset)
        )
        res = await self.session.execute(stmt)
        return list(res.scalars().all())

    async def get_recent_messages(
        self, conversation_id: int, *, count: int = 50
    ) -> List[Message]:
        """Latest `count` messages, returned in chronological order."""
        stmt = (
            select(Message)
            .where(Message.conversation_id == conversation_id)
            .order_by(Message.timestamp.desc(), Message.id.desc())
            .limit(count)
        )
        res = await self.session.execute(stmt)
        return list(reversed(res.scalars().all()))

    async def update(self, message_id: int, content: str) -> bool:
        return await self.update_by_id(message_id, content=content)

    async def delete_by_conversation_id(self, conversation_id: int) -> int:
        return await self.delete_by_field("conversation_id", conversation_id)

    async def get_count(self, conversation_id: int) -> int:
        return await self.count(conversation_id=conversation_id)

    async def get_stats(self, *, conversation_id: Optional[int] = None) -> Dict[str, Any]:
        stmt = select(
            func.count(Message.id).label("total_messages"),
            func.count(case((Message.type == MessageType.USER, 1))).label("user_messages"),
            func.count(case((Message.type == MessageType.AI, 1))).label("ai_messages"),
            func.count(case((Message.type == MessageType.ERROR, 1))).label("error_messages"),
            func.avg(func.length(Message.content)).label("avg_message_length"),
            func.min(Message.timestamp).label("first_message_time"),
            func.max(Message.timestamp).label("last_message_time"),
        )
        if conversation_id is not None:
            stmt = stmt.where(Message.conversation_id == conversation_id)

        res = await self.session.execute(stmt)
        return dict(res.mappings().one())

    async def search(
        self,
        query: str,
        *,
        conversation_id: Optional[int] = None,
        limit: int = 50,
    ) -> List[Dict[str, Any]]:
        """Messages containing `query`, newest first, with their conversation title."""
        stmt = (
            select(
                Message.id,
                Message.conversation_id,
                Message.content,
                Message.type,
                Message.timestamp,
                Conversation.title.label("conversation_title"),
            )
            .join(Conversation, Message.conversation_id == Conversation.id)
            .where(Message.content.ilike(contains_pattern(query), escape=LIKE_ESCAPE_CHAR))
        )
        if conversation_id is not None:
            stmt = stmt.where(Message.conversation_id == conversation_id)
        stmt = stmt.order_by(Message.timestamp.desc(), Message.id.desc()).limit(limit)

        res = await self.session.execute(stmt)
        return [dict(r) for r in res.mappings().all()]
