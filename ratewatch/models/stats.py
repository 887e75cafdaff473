from __future__ import annotations
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class DailyCalls(BaseModel):
    date: str
    count: int = Field(..., ge=0)


class WeeklyCalls(BaseModel):
    week: int
    count: int = Field(..., ge=0)


class BlockEventOut(BaseModel):
    endpoint: str
    timestamp: str
    status: Optional[int] = None
    reason: str


class StatsOut(BaseModel):
    """Shape served at /rate_tracker/stats."""

    model_config = ConfigDict(populate_by_name=True)

    daily_calls: DailyCalls = Field(..., alias="dailyCalls")
    weekly_calls: WeeklyCalls = Field(..., alias="weeklyCalls")
    blocks: List[BlockEventOut] = []
