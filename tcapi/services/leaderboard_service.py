"""
Competition summary and leaderboards.

Everything here is derived on read from the latest TC stats rows and the
retired contributions; nothing is persisted. Team totals include retired
contributions, so a user leaving a team does not change the team's score.
"""

import logging
from collections import defaultdict
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from tcapi.config import Settings
from tcapi.core.ranking import rank_descending
from tcapi.models.user import Category
from tcapi.repositories.hardware_repository import HardwareRepository
from tcapi.repositories.stats_repository import StatsRepository
from tcapi.repositories.team_repository import TeamRepository
from tcapi.repositories.user_repository import UserRepository
from tcapi.schemas.hardware import Hardware
from tcapi.schemas.leaderboard import (
    CategoryLeaderboard,
    CompetitionSummary,
    RetiredUserSummary,
    TeamLeaderboardEntry,
    TeamSummary,
    UserCategoryLeaderboardEntry,
    UserSummary,
    empty_category_leaderboard,
)
from tcapi.schemas.stats import RetiredUserTcStats
from tcapi.schemas.team import Team
from tcapi.schemas.user import User
from tcapi.services.stats_provider import StatsProvider
from tcapi.services.tc_stats_service import TcStatsService
from tcapi.utils.date_utils import utc_now

logger = logging.getLogger(__name__)


class LeaderboardService:
    def __init__(
        self,
        db: Session,
        settings: Settings,
        stats_provider: Optional[StatsProvider] = None,
    ):
        self.db = db
        self.settings = settings
        self.team_repo = TeamRepository(db)
        self.user_repo = UserRepository(db)
        self.hardware_repo = HardwareRepository(db)
        self.stats_repo = StatsRepository(db)
        self.tc_stats_service = TcStatsService(db, settings, stats_provider)

    def _present(self, user: User, privileged: bool) -> User:
        if privileged:
            return user
        return user.masked(self.settings.PASSKEY_VISIBLE_CHARS)

    def _user_summaries(self, users: List[User], teams: Dict[int, Team], privileged: bool) -> List[UserSummary]:
        hardware: Dict[int, Hardware] = {item.id: item for item in self.hardware_repo.get_all()}
        stats = self.tc_stats_service.get_tc_stats_for_users(user.id for user in users)

        summaries = []
        for user in users:
            user_stats = stats[user.id]
            user_hardware = hardware.get(user.hardware_id)
            team = teams.get(user.team_id)
            summaries.append(
                UserSummary(
                    user=self._present(user, privileged),
                    team_name=team.team_name if team else "",
                    hardware_name=user_hardware.hardware_name if user_hardware else "",
                    multiplier=user_hardware.multiplier if user_hardware else 1.0,
                    points=user_stats.points,
                    multiplied_points=user_stats.multiplied_points,
                    units=user_stats.units,
                )
            )
        return summaries

    @staticmethod
    def _retired_summaries(retired: List[RetiredUserTcStats]) -> List[RetiredUserSummary]:
        return [
            RetiredUserSummary(
                retired_user_id=entry.id,
                user_id=entry.user_id,
                display_name=entry.display_name,
                team_id=entry.team_id,
                retired_at=entry.timestamp,
                points=entry.points,
                multiplied_points=entry.multiplied_points,
                units=entry.units,
            )
            for entry in retired
        ]

    def get_competition_summary(self, privileged: bool = False) -> CompetitionSummary:
        """Every team with its active and retired users, ranked by multiplied points."""
        teams = self.team_repo.get_all()
        teams_by_id = {team.id: team for team in teams}
        users = self.user_repo.get_all()

        active_by_team: Dict[int, List[UserSummary]] = defaultdict(list)
        for summary in self._user_summaries(users, teams_by_id, privileged):
            active_by_team[summary.user.team_id].append(summary)

        retired_by_team: Dict[int, List[RetiredUserSummary]] = defaultdict(list)
        for summary in self._retired_summaries(self.stats_repo.get_all_retired_stats()):
            retired_by_team[summary.team_id].append(summary)

        team_summaries = []
        for team in teams:
            active = [
                ranked.item.model_copy(update={"rank_in_team": ranked.rank})
                for ranked in rank_descending(
                    active_by_team[team.id], lambda summary: summary.multiplied_points
                )
            ]
            retired = [
                ranked.item.model_copy(update={"rank_in_team": ranked.rank})
                for ranked in rank_descending(
                    retired_by_team[team.id], lambda summary: summary.multiplied_points
                )
            ]
            members = [*active, *retired]
            captain = next((summary.user for summary in active if summary.user.is_captain), None)
            team_summaries.append(
                TeamSummary(
                    team=team,
                    captain_name=captain.display_name if captain else "",
                    team_points=sum(member.points for member in members),
                    team_multiplied_points=sum(member.multiplied_points for member in members),
                    team_units=sum(member.units for member in members),
                    active_users=active,
                    retired_users=retired,
                )
            )

        ranked_teams = [
            ranked.item.model_copy(update={"rank": ranked.rank})
            for ranked in rank_descending(
                team_summaries, lambda summary: summary.team_multiplied_points
            )
        ]
        return CompetitionSummary(
            generated_at=utc_now(),
            total_points=sum(team.team_points for team in ranked_teams),
            total_multiplied_points=sum(team.team_multiplied_points for team in ranked_teams),
            total_units=sum(team.team_units for team in ranked_teams),
            teams=ranked_teams,
        )

    def get_team_leaderboard(self) -> List[TeamLeaderboardEntry]:
        summary = self.get_competition_summary()
        ranked = rank_descending(summary.teams, lambda team: team.team_multiplied_points)
        return [
            TeamLeaderboardEntry(
                rank=entry.rank,
                team=entry.item.team,
                team_points=entry.item.team_points,
                team_multiplied_points=entry.item.team_multiplied_points,
                team_units=entry.item.team_units,
                diff_to_leader=entry.diff_to_leader,
                diff_to_next=entry.diff_to_next,
            )
            for entry in ranked
        ]

    def get_category_leaderboard(self, privileged: bool = False) -> CategoryLeaderboard:
        """Active users ranked within each category; every category is present."""
        teams_by_id = {team.id: team for team in self.team_repo.get_all()}
        summaries = self._user_summaries(self.user_repo.get_all(), teams_by_id, privileged)

        by_category: Dict[Category, List[UserSummary]] = defaultdict(list)
        for summary in summaries:
            by_category[summary.user.category].append(summary)

        leaderboard = empty_category_leaderboard()
        for category in leaderboard:
            leaderboard[category] = [
                UserCategoryLeaderboardEntry(
                    rank=entry.rank,
                    user=entry.item.user,
                    team_name=entry.item.team_name,
                    hardware_name=entry.item.hardware_name,
                    points=entry.item.points,
                    multiplied_points=entry.item.multiplied_points,
                    units=entry.item.units,
                    diff_to_leader=entry.diff_to_leader,
                    diff_to_next=entry.diff_to_next,
                )
                for entry in rank_descending(
                    by_category[category], lambda summary: summary.multiplied_points
                )
            ]
        return leaderboard
