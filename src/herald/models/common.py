"""Shared response envelope and timestamp types."""

from datetime import datetime
from typing import Annotated, Any

from pydantic import AfterValidator, BaseModel, ConfigDict

from herald.db.base import as_utc

SCHEMA_VERSION = "1.0"

# Naive values (SQLite reads them back that way) are taken as UTC
UTCDateTime = Annotated[datetime, AfterValidator(as_utc)]


class ErrorDetail(BaseModel):
    model_config = ConfigDict(extra="forbid")

    code: str
    message: str
    details: dict[str, Any] | list[Any] | str | None = None
    trace_id: str
    timestamp: datetime


class ErrorResponse(BaseModel):
    """Body of every non-2xx response."""

    model_config = ConfigDict(extra="forbid")

    schema_version: str = SCHEMA_VERSION
    error: ErrorDetail
