"""User ORM entity."""
