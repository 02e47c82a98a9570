"""DTOs for the Messages feature."""
from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator

from api.features.messages.entities.message import MessageType
from api.shared.dtos import BaseDTO, RequestDTO
from core.constants import MAX_MESSAGE_LENGTH


def _clean_content(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("Content must be a non-empty string")
    if len(v) > MAX_MESSAGE_LENGTH:
        raise ValueError(f"Content must be at most {MAX_MESSAGE_LENGTH} characters")
    return v


class AppendMessageRequest(RequestDTO):
    """Append a message to a conversation."""

    content: str = Field(description="Message content")
    type: MessageType = Field(description="Message type: user, ai or error")

    @field_validator("content")
    @classmethod
    def validate_content(cls, v: str) -> str:
        return _clean_content(v)

    @field_validator("type", mode="before")
    @classmethod
    def validate_type(cls, v):
        # Strict mode would otherwise refuse the plain JSON string
        if isinstance(v, str):
            try:
                return MessageType(v)
            except ValueError:
                pass
        raise ValueError("Type must be one of: user, ai, error")


class UpdateMessageRequest(RequestDTO):
    """Edit the content of an existing message."""

    content: str = Field(description="New message content")

    @field_validator("content")
    @classmethod
    def validate_content(cls, v: str) -> str:
        return _clean_content(v)


class MessageDTO(BaseDTO):
    """Conversation message DTO."""

    id: int = Field(description="Message identifier")
    conversation_id: int = Field(description="Owning conversation")
    content: str = Field(description="Message content")
    type: MessageType = Field(description="Message type: user, ai or error")
    timestamp: datetime = Field(description="Creation timestamp")


class MessageSearchResultDTO(MessageDTO):
    """Message hit with the title of its conversation."""

    conversation_title: str = Field(description="Title of the owning conversation")


class MessageStatsDTO(BaseDTO):
    """Aggregate over messages."""

    total_messages: int = 0
    user_messages: int = 0
    ai_messages: int = 0
    error_messages: int = 0
    avg_message_length: Optional[float] = None
    first_message_time: Optional[datetime] = None
    last_message_time: Optional[datetime] = None
