from datetime import datetime
from typing import List

from pydantic import BaseModel, Field

from tcapi.schemas.leaderboard import (
    CategoryLeaderboard,
    TeamLeaderboardEntry,
    empty_category_leaderboard,
)


class MonthlyResultResponse(BaseModel):
    year: int
    month: int
    utc_timestamp: datetime
    team_leaderboard: List[TeamLeaderboardEntry] = Field(default_factory=list)
    user_category_leaderboard: CategoryLeaderboard = Field(
        default_factory=empty_category_leaderboard
    )

    @classmethod
    def empty(cls, year: int, month: int, utc_timestamp: datetime) -> "MonthlyResultResponse":
        return cls(year=year, month=month, utc_timestamp=utc_timestamp)
