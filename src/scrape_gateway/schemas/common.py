"""Common Pydantic v2 schemas shared across the API."""

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Standard error envelope returned for every gateway failure."""

    success: bool = Field(default=False, description="Always false for errors")
    error: str = Field(description="Human-readable, sanitized error message")
    retry_after: int | None = Field(
        default=None,
        serialization_alias="retryAfter",
        description="Seconds to wait before retrying (rate-limited responses only)",
    )
