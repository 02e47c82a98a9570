"""Exceptions for the Messages feature."""
from api.shared.exceptions import NotFoundError


class MessageNotFoundError(NotFoundError):
    """Raised when a message id does not exist."""

    def __init__(self, message_id: int):
        super().__init__("Message", message_id)
        self.error_code = "MESSAGE_NOT_FOUND"
