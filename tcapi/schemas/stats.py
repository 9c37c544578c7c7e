"""
Pydantic models for team competition stats.

All point and unit values are plain integers. ``UserTcStats`` is the value the
engine persists for every user on every update cycle.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from tcapi.models.stats import OffsetSource


def _clamp(value: int) -> int:
    return max(0, value)


class Stats(BaseModel):
    """Raw cumulative totals for one identity."""

    points: int = 0
    units: int = 0


class UserTotalStats(BaseModel):
    """Snapshot of raw cumulative totals observed at ``timestamp``."""

    user_id: int
    timestamp: datetime
    points: int = 0
    units: int = 0


class UserInitialStats(BaseModel):
    """Baseline for the user's current counting window."""

    user_id: int
    timestamp: datetime
    points: int = 0
    units: int = 0


class OffsetTcStats(BaseModel):
    points: int = 0
    multiplied_points: int = 0
    units: int = 0

    @property
    def is_empty(self) -> bool:
        return self.points == 0 and self.multiplied_points == 0 and self.units == 0

    def __add__(self, other: "OffsetTcStats") -> "OffsetTcStats":
        return OffsetTcStats(
            points=self.points + other.points,
            multiplied_points=self.multiplied_points + other.multiplied_points,
            units=self.units + other.units,
        )


class UserOffsetStats(OffsetTcStats):
    model_config = ConfigDict(from_attributes=True)

    id: Optional[int] = None
    user_id: int
    timestamp: datetime
    source: OffsetSource = OffsetSource.MANUAL


class UserTcStats(BaseModel):
    """Points, multiplied points and units earned in the current period."""

    user_id: int
    timestamp: datetime
    points: int = 0
    multiplied_points: int = 0
    units: int = 0

    @classmethod
    def empty(cls, user_id: int, timestamp: datetime) -> "UserTcStats":
        return cls(user_id=user_id, timestamp=timestamp)

    @property
    def is_empty(self) -> bool:
        return self.points == 0 and self.multiplied_points == 0 and self.units == 0

    def with_offset(self, offset: OffsetTcStats) -> "UserTcStats":
        """Apply an offset; every field is floored at zero independently."""
        return UserTcStats(
            user_id=self.user_id,
            timestamp=self.timestamp,
            points=_clamp(self.points + offset.points),
            multiplied_points=_clamp(self.multiplied_points + offset.multiplied_points),
            units=_clamp(self.units + offset.units),
        )


class RetiredUserTcStats(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: Optional[int] = None
    team_id: int
    user_id: int
    display_name: str
    timestamp: datetime
    points: int = 0
    multiplied_points: int = 0
    units: int = 0


class OffsetRequest(BaseModel):
    """Manual adjustment; any field may be negative."""

    points: int = Field(0, description="Unmultiplied points offset")
    multiplied_points: int = Field(0, description="Multiplied points offset")
    units: int = Field(0, description="Units offset")


class UserUpdateError(BaseModel):
    user_id: int
    display_name: str
    reason: str


class UpdateCycleResult(BaseModel):
    started_at: datetime
    finished_at: datetime
    applied_count: int = 0
    skipped_count: int = 0
    errors: List[UserUpdateError] = Field(default_factory=list)


class ResetResult(BaseModel):
    reset_at: datetime
    users_reset: int = 0
    users_skipped: int = 0
