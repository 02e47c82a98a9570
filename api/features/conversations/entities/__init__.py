"""Conversation ORM entity."""
