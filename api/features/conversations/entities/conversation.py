"""Conversation entity."""
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from api.shared.entities.base import BaseEntity, TimestampMixin
from core.constants import DEFAULT_CONVERSATION_TITLE, MAX_TITLE_LENGTH

if TYPE_CHECKING:
    from api.features.messages.entities.message import Message


class Conversation(TimestampMixin, BaseEntity):
    """A titled, ordered collection of messages."""

    __table_args__ = (
        Index("idx_conversations_user_id", "user_id"),
        Index("idx_conversations_created_at", "created_at"),
    )

    user_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=True
    )
    title: Mapped[str] = mapped_column(
        String(MAX_TITLE_LENGTH), nullable=False, default=DEFAULT_CONVERSATION_TITLE
    )

    messages: Mapped[List["Message"]] = relationship(
        back_populates="conversation",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Message.timestamp",
    )
