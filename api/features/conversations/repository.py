"""Repository for conversation persistence operations.

All statements are built with SQLAlchemy constructs, so user input is always
bound as a parameter.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

import structlog
from sqlalchemy import Select, case, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from api.features.conversations.entities.conversation import Conversation
from api.features.messages.entities.message import Message, MessageType
from api.shared.base import BaseRepository
from api.shared.entities.base import utc_now
from api.shared.utils import LIKE_ESCAPE_CHAR, contains_pattern

logger = structlog.get_logger("agrichat.conversations.repository")


def _with_message_aggregates() -> Select:
    """Conversation columns plus message_count and last_message_time."""
    return (
        select(
            Conversation.id,
            Conversation.user_id,
            Conversation.title,
            Conversation.created_at,
            Conversation.updated_at,
            func.count(Message.id).label("message_count"),
            func.max(Message.timestamp).label("last_message_time"),
        )
        .outerjoin(Message, Message.conversation_id == Conversation.id)
        .group_by(
            Conversation.id,
            Conversation.user_id,
            Conversation.title,
            Conversation.created_at,
            Conversation.updated_at,
        )
    )


class ConversationRepository(BaseRepository[Conversation]):
    """Repository for conversation entities with aggregate queries."""

    model = Conversation

    def __init__(self, session: AsyncSession):
        super().__init__(session)

    async def create_conversation(
        self, title: str, user_id: Optional[int] = None
    ) -> Conversation:
        now = utc_now()
        conversation = Conversation(
            title=title, user_id=user_id, created_at=now, updated_at=now
        )
        conversation = await self.create(conversation)
        logger.info("conversation.created", conversation_id=conversation.id)
        return conversation

    async def find_by_id(self, conversation_id: int) -> Optional[Dict[str, Any]]:
        stmt = _with_message_aggregates().where(Conversation.id == conversation_id)
        res = await self.session.execute(stmt)
        row = res.mappings().first()
        return dict(row) if row else None

    async def find_all(
        self,
        *,
        user_id: Optional[int] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[Dict[str, Any]]:
        """List conversations, most recently updated first."""
        stmt = _with_message_aggregates()
        if user_id is not None:
            stmt = stmt.where(Conversation.user_id == user_id)
        stmt = (
            stmt.order_by(Conversation.updated_at.desc(), Conversation.id.desc())
            .limit(limit)
            .offset(offset)
        )
        res = await self.session.execute(stmt)
        return [dict(r) for r in res.mappings().all()]

    async def update_title(self, conversation_id: int, title: str) -> bool:
        return await self.update_by_id(
            conversation_id, title=title, updated_at=utc_now()
        )

    async def touch(self, conversation_id: int) -> bool:
        """Bump updated_at for recency ordering."""
        return await self.update_by_id(conversation_id, updated_at=utc_now())

    async def search(
        self,
        query: str,
        *,
        user_id: Optional[int] = None,
        limit: int = 20,
    ) -> List[Dict[str, Any]]:
        """Conversations whose title or any message contains `query` (case-insensitive).

        Matching ids are resolved first so each conversation appears once and its
        counts cover all of its messages, not only the matching ones.
        """
        pattern = contains_pattern(query)
        matched_ids = (
            select(Conversation.id)
            .outerjoin(Message, Message.conversation_id == Conversation.id)
            .where(
                or_(
                    Conversation.title.ilike(pattern, escape=LIKE_ESCAPE_CHAR),
                    Message.content.ilike(pattern, escape=LIKE_ESCAPE_CHAR),
                )
            )
            .distinct()
        )
        if user_id is not None:
            matched_ids = matched_ids.where(Conversation.user_id == user_id)

        stmt = (
            _with_message_aggregates()
            .where(Conversation.id.in_(matched_ids.scalar_subquery()))
            .order_by(Conversation.updated_at.desc(), Conversation.id.desc())
            .limit(limit)
        )
        res = await self.session.execute(stmt)
        return [dict(r) for r in res.mappings().all()]

    async def get_stats(
        self,
        *,
        user_id: Optional[int] = None,
        conversation_id: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Single-row aggregate over conversations and their messages."""
        content_length = func.length(Message.content)
        stmt = select(
            func.count(func.distinct(Conversation.id)).label("total_conversations"),
            func.count(Message.id).label("total_messages"),
            func.count(case((Message.type == MessageType.USER, Message.id))).label(
                "user_messages"
            ),
            func.count(case((Message.type == MessageType.AI, Message.id))).label(
                "ai_messages"
            ),
            func.count(case((Message.type == MessageType.ERROR, Message.id))).label(
                "error_messages"
            ),
            func.avg(case((Message.type == MessageType.USER, content_length))).label(
                "avg_user_message_length"
            ),
            func.avg(case((Message.type == MessageType.AI, content_length))).label(
                "avg_ai_message_length"
            ),
        ).select_from(Conversation).outerjoin(
            Message, Message.conversation_id == Conversation.id
        )
        if user_id is not None:
            stmt = stmt.where(Conversation.user_id == user_id)
        if conversation_id is not None:
            stmt = stmt.where(Conversation.id == conversation_id)

        res = await self.session.execute(stmt)
        return dict(res.mappings().one())
