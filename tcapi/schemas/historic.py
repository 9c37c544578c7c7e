from datetime import datetime
from enum import Enum
from typing import List

from pydantic import BaseModel


class Granularity(str, Enum):
    HOUR = "hourly"
    DAY = "daily"
    MONTH = "monthly"


class HistoricStats(BaseModel):
    """Stats earned within one bucket, as a delta against the previous bucket."""

    bucket_start: datetime
    points: int = 0
    multiplied_points: int = 0
    units: int = 0


class HistoricStatsResponse(BaseModel):
    subject_id: int
    granularity: Granularity
    period_start: datetime
    period_end: datetime
    stats: List[HistoricStats]
