"""DTOs for the Stats feature."""
from pydantic import Field

from api.features.conversations.dtos import ConversationStatsDTO
from api.features.messages.dtos import MessageStatsDTO
from api.shared.dtos import BaseDTO


class GlobalStatsDTO(BaseDTO):
    """Aggregates across every conversation."""

    conversations: ConversationStatsDTO = Field(description="Conversation aggregates")
    messages: MessageStatsDTO = Field(description="Message aggregates")


class ConversationStatsResponse(BaseDTO):
    """Aggregates for a single conversation."""

    conversation: ConversationStatsDTO = Field(description="Conversation aggregates")
    messages: MessageStatsDTO = Field(description="Message aggregates")
