"""User entity. The table is reserved for future authentication."""
from typing import Optional

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from api.shared.entities.base import BaseEntity, TimestampMixin


class User(TimestampMixin, BaseEntity):
    """Reserved account record; conversations may reference it via user_id."""

    username: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    email: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    password_hash: Mapped[Optional[str]] = mapped_column(String(255))
