"""Notification analytics report models."""

import datetime

from pydantic import BaseModel, Field


class DayCount(BaseModel):
    date: datetime.date
    count: int = 0


class StatsReport(BaseModel):
    days: int
    total: int = 0
    unread: int = 0
    read: int = 0
    read_rate: float = 0.0
    by_type: dict[str, int] = Field(default_factory=dict)
    by_day: list[DayCount] = Field(default_factory=list)
