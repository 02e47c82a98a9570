"""Common utility functions."""
from typing import Optional

from core.constants import DEFAULT_CONVERSATION_TITLE

LIKE_ESCAPE_CHAR = "\\"


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so user input matches literally."""
    return (
        value.replace(LIKE_ESCAPE_CHAR, LIKE_ESCAPE_CHAR * 2)
        .replace("%", f"{LIKE_ESCAPE_CHAR}%")
        .replace("_", f"{LIKE_ESCAPE_CHAR}_")
    )


def contains_pattern(value: str) -> str:
    """Build a `%value%` LIKE pattern from raw user input."""
    return f"%{escape_like(value)}%"


def normalize_title(title: Optional[str]) -> str:
    """Blank or missing titles fall back to the default title."""
    if title is None or not title.strip():
        return DEFAULT_CONVERSATION_TITLE
    return title.strip()
