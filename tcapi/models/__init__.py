from tcapi.models.base import Base
from tcapi.models.hardware import Hardware, HardwareMake, HardwareType
from tcapi.models.monthly_result import MonthlyResult
from tcapi.models.stats import (
    OffsetSource,
    RetiredUserStats,
    UserInitialStats,
    UserOffsetStats,
    UserTcStatsHourly,
    UserTotalStats,
)
from tcapi.models.team import Team
from tcapi.models.user import Category, User

__all__ = [
    "Base",
    "Category",
    "Hardware",
    "HardwareMake",
    "HardwareType",
    "MonthlyResult",
    "OffsetSource",
    "RetiredUserStats",
    "Team",
    "User",
    "UserInitialStats",
    "UserOffsetStats",
    "UserTcStatsHourly",
    "UserTotalStats",
]
