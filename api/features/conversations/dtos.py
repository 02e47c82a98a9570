"""DTOs for the Conversations feature."""
from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator

from api.shared.dtos import BaseDTO, RequestDTO
from api.shared.utils import normalize_title
from core.constants import MAX_TITLE_LENGTH


class ConversationTitleRequest(RequestDTO):
    """Body for creating a conversation or renaming one.

    A missing, null or blank title becomes the default title.
    """

    title: Optional[str] = Field(
        default=None,
        max_length=MAX_TITLE_LENGTH,
        validate_default=True,
        description="Conversation title",
    )

    @field_validator("title")
    @classmethod
    def default_blank_title(cls, v: Optional[str]) -> str:
        return normalize_title(v)


class ConversationDTO(BaseDTO):
    """Conversation with derived message aggregates."""

    id: int = Field(description="Conversation identifier")
    user_id: Optional[int] = Field(default=None, description="Owning user (unused)")
    title: str = Field(description="Conversation title")
    created_at: datetime = Field(description="Creation timestamp")
    updated_at: datetime = Field(description="Last update timestamp")
    message_count: int = Field(default=0, description="Number of messages")
    last_message_time: Optional[datetime] = Field(
        default=None, description="Timestamp of the newest message"
    )


class ConversationStatsDTO(BaseDTO):
    """Aggregate over conversations and their messages."""

    total_conversations: int = 0
    total_messages: int = 0
    user_messages: int = 0
    ai_messages: int = 0
    error_messages: int = 0
    avg_user_message_length: Optional[float] = None
    avg_ai_message_length: Optional[float] = None
