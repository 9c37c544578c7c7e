from datetime import datetime
from typing import Dict, List

from pydantic import BaseModel, Field

from tcapi.models.user import Category
from tcapi.schemas.team import Team
from tcapi.schemas.user import User


class UserSummary(BaseModel):
    """An active user's current TC stats."""

    user: User
    team_name: str
    hardware_name: str
    multiplier: float
    points: int = 0
    multiplied_points: int = 0
    units: int = 0
    rank_in_team: int = 0


class RetiredUserSummary(BaseModel):
    retired_user_id: int
    user_id: int
    display_name: str
    team_id: int
    retired_at: datetime
    points: int = 0
    multiplied_points: int = 0
    units: int = 0
    rank_in_team: int = 0


class TeamSummary(BaseModel):
    team: Team
    captain_name: str = ""
    team_points: int = 0
    team_multiplied_points: int = 0
    team_units: int = 0
    rank: int = 0
    active_users: List[UserSummary] = Field(default_factory=list)
    retired_users: List[RetiredUserSummary] = Field(default_factory=list)

    @property
    def active_user_count(self) -> int:
        return len(self.active_users)

    @property
    def retired_user_count(self) -> int:
        return len(self.retired_users)


class CompetitionSummary(BaseModel):
    generated_at: datetime
    total_points: int = 0
    total_multiplied_points: int = 0
    total_units: int = 0
    teams: List[TeamSummary] = Field(default_factory=list)


class TeamLeaderboardEntry(BaseModel):
    rank: int
    team: Team
    team_points: int = 0
    team_multiplied_points: int = 0
    team_units: int = 0
    diff_to_leader: int = 0
    diff_to_next: int = 0


class UserCategoryLeaderboardEntry(BaseModel):
    rank: int
    user: User
    team_name: str
    hardware_name: str
    points: int = 0
    multiplied_points: int = 0
    units: int = 0
    diff_to_leader: int = 0
    diff_to_next: int = 0


CategoryLeaderboard = Dict[Category, List[UserCategoryLeaderboardEntry]]


def empty_category_leaderboard() -> CategoryLeaderboard:
    """Every declared category, each with an empty list."""
    return {category: [] for category in Category.all()}
