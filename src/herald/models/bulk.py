"""Bulk mutation request/result models."""

from pydantic import BaseModel, ConfigDict, Field


class BulkRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    ids: list[str] = Field(default_factory=list)
    batch_size: int | None = None


class BulkResult(BaseModel):
    """Partial-failure result: callers may retry exactly the failed ids."""

    succeeded: int = 0
    failed: list[str] = Field(default_factory=list)


class AffectedResult(BaseModel):
    affected_count: int = 0
    failed: list[str] = Field(default_factory=list)
