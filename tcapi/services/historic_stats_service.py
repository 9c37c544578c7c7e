"""
Historic stats queries.

Hourly stats cover one day, daily stats one month and monthly stats one year.
Each result starts with the zero-delta base entry followed by one delta per
bucket that has observations, or per bucket between the first and last
observation when ``fill_gaps`` is set. Team results have the same shape.
"""

import logging
from datetime import date, datetime
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from tcapi.core.diff_engine import StatsSeries, bucket_deltas, fill_bucket_gaps, merge_bucket_deltas
from tcapi.core.exceptions import NotFoundError, ValidationError
from tcapi.repositories.stats_repository import StatsRepository
from tcapi.repositories.team_repository import TeamRepository
from tcapi.repositories.user_repository import UserRepository
from tcapi.schemas.historic import Granularity, HistoricStats, HistoricStatsResponse
from tcapi.utils.date_utils import day_bounds, month_bounds, year_bounds

logger = logging.getLogger(__name__)


def period_bounds(
    granularity: Granularity, year: int, month: Optional[int] = None, day: Optional[int] = None
) -> Tuple[datetime, datetime]:
    """The [start, end) window a granularity is queried over."""
    try:
        if granularity == Granularity.HOUR:
            if month is None or day is None:
                raise ValidationError("Hourly stats need a year, month and day")
            return day_bounds(date(year, month, day))
        if granularity == Granularity.DAY:
            if month is None:
                raise ValidationError("Daily stats need a year and month")
            return month_bounds(year, month)
        return year_bounds(year)
    except ValueError as e:
        raise ValidationError(f"Invalid date: {e}")


class HistoricStatsService:
    def __init__(self, db: Session):
        self.db = db
        self.user_repo = UserRepository(db)
        self.team_repo = TeamRepository(db)
        self.stats_repo = StatsRepository(db)

    def _user_buckets(
        self,
        user_id: int,
        granularity: Granularity,
        start: datetime,
        end: datetime,
        fill_gaps: bool = False,
    ) -> List[HistoricStats]:
        series = StatsSeries(self.stats_repo.get_tc_stats_series(user_id, until=end))
        return bucket_deltas(series.window(start, end), granularity, fill_gaps)

    def get_user_historic_stats(
        self,
        user_id: int,
        granularity: Granularity,
        year: int,
        month: Optional[int] = None,
        day: Optional[int] = None,
        fill_gaps: bool = False,
    ) -> HistoricStatsResponse:
        if not self.user_repo.exists(user_id):
            raise NotFoundError(f"User not found: {user_id}", details={"user_id": user_id})

        start, end = period_bounds(granularity, year, month, day)
        stats = self._user_buckets(user_id, granularity, start, end, fill_gaps)
        logger.debug(f"{len(stats)} {granularity.value} entries for user {user_id}")
        return HistoricStatsResponse(
            subject_id=user_id,
            granularity=granularity,
            period_start=start,
            period_end=end,
            stats=stats,
        )

    def get_team_historic_stats(
        self,
        team_id: int,
        granularity: Granularity,
        year: int,
        month: Optional[int] = None,
        day: Optional[int] = None,
        fill_gaps: bool = False,
    ) -> HistoricStatsResponse:
        """Sum of the team's current members' buckets."""
        if not self.team_repo.exists(team_id):
            raise NotFoundError(f"Team not found: {team_id}", details={"team_id": team_id})

        start, end = period_bounds(granularity, year, month, day)
        members = self.user_repo.get_by_team(team_id)
        stats = merge_bucket_deltas(
            self._user_buckets(member.id, granularity, start, end) for member in members
        )
        if fill_gaps:
            # Gaps between members' ranges are gaps too
            stats = fill_bucket_gaps(stats, granularity)
        return HistoricStatsResponse(
            subject_id=team_id,
            granularity=granularity,
            period_start=start,
            period_end=end,
            stats=stats,
        )
