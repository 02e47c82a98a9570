"""Message ORM entity and the message_type enum."""
