from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, Field

from api.shared.dtos import PaginationMeta

T = TypeVar("T")


class ResponseModel(BaseModel, Generic[T]):
    """Uniform envelope: `{success, data?, error?}` plus list/search metadata.

    Routers serialize it with `response_model_exclude_unset=True`, so only the
    keys a response actually sets are emitted.
    """

    success: bool = Field(default=True, description="Whether the request succeeded")
    data: Optional[T] = Field(description="Response data", default=None)
    error: Optional[str] = Field(description="Error message", default=None)
    message: Optional[str] = Field(description="Response message", default=None)
    pagination: Optional[PaginationMeta] = Field(default=None)
    query: Optional[str] = Field(default=None, description="Search query echoed back")
    count: Optional[int] = Field(default=None, description="Number of items returned")

    @classmethod
    def ok(
        cls, data: Optional[T] = None, message: Optional[str] = None, **meta
    ) -> "ResponseModel[T]":
        """Create a successful response."""
        fields = {"success": True, **meta}
        if data is not None:
            fields["data"] = data
        if message is not None:
            fields["message"] = message
        return cls(**fields)

    @classmethod
    def fail(cls, error: str) -> "ResponseModel[T]":
        """Create an error response."""
        return cls(success=False, error=error)
