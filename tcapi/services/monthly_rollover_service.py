"""
Monthly rollover: archive the month's leaderboards and reset the period.

Archive and reset are separate operations. Archiving should come first at
month end; nothing enforces that order.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from tcapi.config import Settings
from tcapi.core.exceptions import StatsProviderError, ValidationError
from tcapi.core.locks import single_flight, user_lock
from tcapi.repositories.monthly_result_repository import MonthlyResultRepository
from tcapi.repositories.stats_repository import StatsRepository
from tcapi.repositories.user_repository import UserRepository
from tcapi.schemas.monthly_result import MonthlyResultResponse
from tcapi.schemas.stats import ResetResult, Stats, UserTcStats
from tcapi.schemas.user import User
from tcapi.services.leaderboard_service import LeaderboardService
from tcapi.services.stats_provider import (
    HttpStatsProvider,
    StatsProvider,
    fetch_totals_concurrently,
)
from tcapi.utils.date_utils import utc_now

logger = logging.getLogger(__name__)


class MonthlyRolloverService:
    def __init__(
        self,
        db: Session,
        settings: Settings,
        stats_provider: Optional[StatsProvider] = None,
    ):
        self.db = db
        self.settings = settings
        self.stats_provider = stats_provider or HttpStatsProvider(settings)
        self.user_repo = UserRepository(db)
        self.stats_repo = StatsRepository(db)
        self.monthly_result_repo = MonthlyResultRepository(db)
        self.leaderboard_service = LeaderboardService(db, settings, self.stats_provider)

    def reset_period(self) -> ResetResult:
        """Start a new counting period for every user.

        Each user's baseline moves to their current totals and a zero TC stats
        row is written. All offsets and retired contributions are discarded.
        Holds the update cycle lock so no cycle reads a half-reset state.
        """
        with single_flight("period reset", self.settings.CYCLE_LOCK_TIMEOUT_SECONDS):
            return self._reset_period()

    def _reset_period(self) -> ResetResult:
        now = utc_now()
        result = ResetResult(reset_at=now)
        users = self.user_repo.get_all()
        logger.info(f"Resetting competition period for {len(users)} users")

        fetched = fetch_totals_concurrently(
            self.stats_provider,
            [user for user in users if user.has_passkey],
            self.settings.STATS_MAX_WORKERS,
        )

        try:
            for user in users:
                totals = self._reset_totals(user, fetched.get(user.id))
                if totals is None:
                    logger.warning(f"No totals for user {user.id}, baseline not reset")
                    result.users_skipped += 1
                    continue

                with user_lock(user.id):
                    self.stats_repo.set_initial_stats(
                        user.id, now, totals.points, totals.units, commit=False
                    )
                    self.stats_repo.create_total_stats(
                        user.id, now, totals.points, totals.units, commit=False
                    )
                    self.stats_repo.create_tc_stats(UserTcStats.empty(user.id, now), commit=False)
                result.users_reset += 1

            deleted_offsets = self.stats_repo.delete_offsets(commit=False)
            deleted_retired = self.stats_repo.delete_all_retired_stats(commit=False)
            self.stats_repo.commit()
        except Exception:
            self.stats_repo.rollback()
            logger.exception("Period reset failed, no changes were saved")
            raise

        logger.info(
            f"Period reset: {result.users_reset} users reset, {result.users_skipped} skipped, "
            f"{deleted_offsets} offsets and {deleted_retired} retired users removed"
        )
        return result

    def _reset_totals(self, user: User, fetched) -> Optional[Stats]:
        if isinstance(fetched, Stats):
            return fetched
        if isinstance(fetched, StatsProviderError):
            logger.warning(
                f"Unable to get totals for user {user.id}, using last snapshot: {fetched.message}"
            )
        snapshot = self.stats_repo.get_latest_total_stats(user.id)
        if snapshot is None:
            return None
        return Stats(points=snapshot.points, units=snapshot.units)

    def archive_period(
        self, year: Optional[int] = None, month: Optional[int] = None
    ) -> MonthlyResultResponse:
        """Save the current leaderboards as the result for (year, month).

        Defaults to the current UTC month. Saving again for the same month
        supersedes the earlier result.
        """
        now = utc_now()
        year = year or now.year
        month = month or now.month
        if not 1 <= month <= 12:
            raise ValidationError(f"Invalid month: {month}")

        result = MonthlyResultResponse(
            year=year,
            month=month,
            utc_timestamp=now,
            team_leaderboard=self.leaderboard_service.get_team_leaderboard(),
            user_category_leaderboard=self.leaderboard_service.get_category_leaderboard(),
        )
        self.monthly_result_repo.create(result)
        logger.info(
            f"Saved result for {year}/{month:02d} with {len(result.team_leaderboard)} teams"
        )
        return result

    def get_monthly_result(self, year: int, month: int) -> MonthlyResultResponse:
        """Latest saved result for the month, or an empty result when none was saved."""
        if not 1 <= month <= 12:
            raise ValidationError(f"Invalid month: {month}")
        result = self.monthly_result_repo.get_latest(year, month)
        if result is None:
            return MonthlyResultResponse.empty(year, month, utc_now())
        return result
