"""Entity registry to ensure SQLAlchemy loads all table metadata.

Import all entity modules here so Alembic and create_all can discover them.
"""
# Import base first to expose BaseEntity.metadata
from api.shared.entities.base import BaseEntity  # noqa: F401

# Feature: Users (reserved, no operations)
from api.features.users.entities.user import User  # noqa: F401

# Feature: Conversations
from api.features.conversations.entities.conversation import Conversation  # noqa: F401

# Feature: Messages
from api.features.messages.entities.message import Message  # noqa: F401

metadata = BaseEntity.metadata
