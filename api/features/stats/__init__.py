"""Stats feature: global and per-conversation aggregates."""
