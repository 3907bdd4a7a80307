"""Feed filter and page models."""

from pydantic import BaseModel, ConfigDict

from herald.models.common import UTCDateTime
from herald.models.enums import ReadStatus, SortBy
from herald.models.notification import Notification


class FeedFilter(BaseModel):
    """All fields optional and combined with AND."""

    model_config = ConfigDict(extra="forbid")

    search: str | None = None
    types: list[str] | None = None
    status: ReadStatus = ReadStatus.ALL
    date_from: UTCDateTime | None = None
    date_to: UTCDateTime | None = None
    sort_by: SortBy = SortBy.NEWEST


class FeedPage(BaseModel):
    items: list[Notification]
    next_cursor: str | None = None
    limit: int
