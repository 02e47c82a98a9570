"""Shared DTOs for the AgriChat API."""
from datetime import datetime, timezone
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field


class BaseDTO(BaseModel):
    """Base DTO for responses built from entities or row mappings."""

    model_config = ConfigDict(from_attributes=True)


class RequestDTO(BaseModel):
    """Base DTO for request bodies: unknown fields and type coercion are rejected."""

    model_config = ConfigDict(extra="forbid", strict=True)


class PaginationMeta(BaseDTO):
    """Pagination metadata attached to list responses."""
    limit: int = Field(description="Maximum number of items requested")
    offset: int = Field(description="Number of items skipped")
    count: int = Field(description="Number of items returned")


class HealthCheckResponse(BaseDTO):
    """Health check response DTO."""
    status: str = Field(description="Service status")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    version: str = Field(default="1.0.0")
    database: Dict[str, Any] = Field(default_factory=dict)
