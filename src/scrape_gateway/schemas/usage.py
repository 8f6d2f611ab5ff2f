"""Usage ledger, retention and analytics response schemas."""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class UsageLogResponse(_CamelModel):
    """A single ledger row as exposed to operators and to its owner."""

    id: uuid.UUID
    user_id: str
    function_name: str
    request_target: str | None = None
    status_code: int | None = None
    success: bool
    error_message: str | None = None
    created_at: datetime


class UserUsageStats(_CamelModel):
    """Per-user breakdown inside the analytics view."""

    user_id: str
    total_requests: int
    successful_requests: int
    failed_requests: int
    last_request: datetime


class UsageAnalyticsResponse(_CamelModel):
    """Aggregates over the most recent ledger rows."""

    sample_size: int = Field(description="Maximum number of rows the aggregation considered")
    total_requests: int
    successful_requests: int
    failed_requests: int
    success_rate: float = Field(description="Percentage of successful requests, 0-100")
    by_function: dict[str, int]
    unique_users: int
    users: list[UserUsageStats]
    logs: list[UsageLogResponse]


class CleanupResponse(_CamelModel):
    """Result of a retention sweep."""

    success: bool = True
    message: str
    deleted_count: int


class RateLimitSnapshot(_CamelModel):
    limit: int
    remaining: int
    window_seconds: int


class MyUsageResponse(_CamelModel):
    """The caller's own recent usage and remaining quota."""

    rate_limit: RateLimitSnapshot
    logs: list[UsageLogResponse]
