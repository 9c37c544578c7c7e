"""
Retirement of users leaving a team.

When a user is deleted or moves team, whatever they earned this period stays
with the team they are leaving as a retired contribution, and the user's
baseline moves up to their current totals so nothing is counted twice.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from tcapi.config import Settings
from tcapi.core.exceptions import NotFoundError, StatsProviderError
from tcapi.core.locks import user_lock
from tcapi.repositories.stats_repository import StatsRepository
from tcapi.repositories.user_repository import UserRepository
from tcapi.schemas.stats import RetiredUserTcStats, Stats, UserTcStats
from tcapi.schemas.user import User
from tcapi.services.stats_provider import HttpStatsProvider, StatsProvider
from tcapi.services.tc_stats_service import TcStatsService
from tcapi.utils.date_utils import utc_now

logger = logging.getLogger(__name__)


class RetirementService:
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
        self.tc_stats_service = TcStatsService(db, settings, self.stats_provider)

    def retire_user_by_id(self, user_id: int) -> Optional[RetiredUserTcStats]:
        user = self.user_repo.get_by_id(user_id)
        if user is None:
            raise NotFoundError(f"User not found: {user_id}", details={"user_id": user_id})
        return self.retire(user)

    def retire(self, user: User, commit: bool = True) -> Optional[RetiredUserTcStats]:
        """Retire ``user`` from the team recorded on ``user``.

        The user is always re-baselined to their current totals and their
        offsets are cleared, so nothing from the old team follows them.
        Returns the retired contribution, or None when the user had no
        multiplied points this period and no contribution was recorded.
        """
        with user_lock(user.id):
            current = self.tc_stats_service.get_tc_stats_for_users([user.id])[user.id]
            now = utc_now()

            retired = None
            if current.multiplied_points == 0:
                logger.info(f"User {user.id} has no TC points, no contribution to retire")
            else:
                retired = self.stats_repo.create_retired_stats(
                    team_id=user.team_id,
                    user_id=user.id,
                    display_name=user.display_name,
                    stats=current,
                    timestamp=now,
                    commit=False,
                )

            totals = self._current_totals(user)
            if totals is not None:
                self.stats_repo.set_initial_stats(
                    user.id, now, totals.points, totals.units, commit=False
                )
                self.stats_repo.create_total_stats(
                    user.id, now, totals.points, totals.units, commit=False
                )
            self.stats_repo.delete_offsets(user.id, commit=False)
            self.stats_repo.create_tc_stats(UserTcStats.empty(user.id, now), commit=False)

            if commit:
                self.stats_repo.commit()

        if retired is not None:
            logger.info(
                f"Retired user {user.id} ({user.display_name}) from team {user.team_id} "
                f"with {retired.multiplied_points} multiplied points"
            )
        return retired

    def _current_totals(self, user: User) -> Optional[Stats]:
        """Latest totals from the provider, falling back to the last snapshot."""
        if user.has_passkey:
            try:
                return self.stats_provider.fetch_totals(user)
            except StatsProviderError as e:
                logger.warning(
                    f"Unable to get current totals for user {user.id}, "
                    f"using last snapshot: {e.message}"
                )

        snapshot = self.stats_repo.get_latest_total_stats(user.id)
        if snapshot is None:
            logger.warning(f"No totals available for user {user.id}, keeping baseline")
            return None
        return Stats(points=snapshot.points, units=snapshot.units)
