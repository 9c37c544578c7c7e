"""
Stats repository - persistence for the team competition engine.

Covers the snapshot store (raw totals), baselines, the offset ledger, the
TC stats time series and retired contributions. TC stats rows are only ever
inserted, so a reader always sees a user's state either before or after a
cycle's write, never in between.
"""

from datetime import datetime
from typing import Dict, Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from tcapi.models.stats import OffsetSource
from tcapi.models.stats import RetiredUserStats as RetiredUserStatsModel
from tcapi.models.stats import UserInitialStats as UserInitialStatsModel
from tcapi.models.stats import UserOffsetStats as UserOffsetStatsModel
from tcapi.models.stats import UserTcStatsHourly as UserTcStatsModel
from tcapi.models.stats import UserTotalStats as UserTotalStatsModel
from tcapi.schemas.stats import (
    OffsetTcStats,
    RetiredUserTcStats,
    UserInitialStats,
    UserOffsetStats,
    UserTcStats,
    UserTotalStats,
)


class StatsRepository:
    def __init__(self, db: Session):
        self.db = db

    def _commit_or_flush(self, commit: bool) -> None:
        try:
            self.db.flush()
            if commit:
                self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    def commit(self) -> None:
        self._commit_or_flush(True)

    def rollback(self) -> None:
        self.db.rollback()

    # ------------------------------------------------------------------
    # Snapshot store
    # ------------------------------------------------------------------

    @staticmethod
    def _to_total_stats(instance: UserTotalStatsModel) -> UserTotalStats:
        return UserTotalStats(
            user_id=instance.user_id,
            timestamp=instance.utc_timestamp,
            points=instance.total_points,
            units=instance.total_units,
        )

    def create_total_stats(
        self, user_id: int, timestamp: datetime, points: int, units: int, commit: bool = True
    ) -> UserTotalStats:
        instance = UserTotalStatsModel(
            user_id=user_id,
            utc_timestamp=timestamp,
            total_points=points,
            total_units=units,
        )
        self.db.add(instance)
        self._commit_or_flush(commit)
        return self._to_total_stats(instance)

    def get_latest_total_stats(self, user_id: int) -> Optional[UserTotalStats]:
        instance = (
            self.db.query(UserTotalStatsModel)
            .filter(UserTotalStatsModel.user_id == user_id)
            .order_by(UserTotalStatsModel.utc_timestamp.desc(), UserTotalStatsModel.id.desc())
            .first()
        )
        return self._to_total_stats(instance) if instance else None

    # ------------------------------------------------------------------
    # Baselines
    # ------------------------------------------------------------------

    def get_initial_stats(self, user_id: int) -> Optional[UserInitialStats]:
        instance = self.db.get(UserInitialStatsModel, user_id)
        if instance is None:
            return None
        return UserInitialStats(
            user_id=instance.user_id,
            timestamp=instance.utc_timestamp,
            points=instance.initial_points,
            units=instance.initial_units,
        )

    def set_initial_stats(
        self, user_id: int, timestamp: datetime, points: int, units: int, commit: bool = True
    ) -> UserInitialStats:
        """Replace the user's single baseline row."""
        instance = self.db.get(UserInitialStatsModel, user_id)
        if instance is None:
            instance = UserInitialStatsModel(user_id=user_id)
            self.db.add(instance)
        instance.utc_timestamp = timestamp
        instance.initial_points = points
        instance.initial_units = units
        self._commit_or_flush(commit)
        return UserInitialStats(user_id=user_id, timestamp=timestamp, points=points, units=units)

    # ------------------------------------------------------------------
    # Offset ledger
    # ------------------------------------------------------------------

    @staticmethod
    def _to_offset(instance: UserOffsetStatsModel) -> UserOffsetStats:
        return UserOffsetStats(
            id=instance.id,
            user_id=instance.user_id,
            timestamp=instance.utc_timestamp,
            points=instance.points_offset,
            multiplied_points=instance.multiplied_points_offset,
            units=instance.units_offset,
            source=OffsetSource(instance.source),
        )

    def create_offset(
        self,
        user_id: int,
        timestamp: datetime,
        offset: OffsetTcStats,
        source: OffsetSource = OffsetSource.MANUAL,
        commit: bool = True,
    ) -> UserOffsetStats:
        instance = UserOffsetStatsModel(
            user_id=user_id,
            utc_timestamp=timestamp,
            points_offset=offset.points,
            multiplied_points_offset=offset.multiplied_points,
            units_offset=offset.units,
            source=source.value,
        )
        self.db.add(instance)
        self._commit_or_flush(commit)
        return self._to_offset(instance)

    def get_offsets(self, user_id: int) -> List[UserOffsetStats]:
        instances = (
            self.db.query(UserOffsetStatsModel)
            .filter(UserOffsetStatsModel.user_id == user_id)
            .order_by(UserOffsetStatsModel.id)
            .all()
        )
        return [self._to_offset(instance) for instance in instances]

    def get_offset_sum(
        self,
        user_id: int,
        source: Optional[OffsetSource] = None,
        after: Optional[datetime] = None,
        until: Optional[datetime] = None,
    ) -> OffsetTcStats:
        query = self.db.query(
            func.coalesce(func.sum(UserOffsetStatsModel.points_offset), 0),
            func.coalesce(func.sum(UserOffsetStatsModel.multiplied_points_offset), 0),
            func.coalesce(func.sum(UserOffsetStatsModel.units_offset), 0),
        ).filter(UserOffsetStatsModel.user_id == user_id)
        if source is not None:
            query = query.filter(UserOffsetStatsModel.source == source.value)
        if after is not None:
            query = query.filter(UserOffsetStatsModel.utc_timestamp > after)
        if until is not None:
            query = query.filter(UserOffsetStatsModel.utc_timestamp <= until)
        points, multiplied_points, units = query.one()
        return OffsetTcStats(
            points=int(points), multiplied_points=int(multiplied_points), units=int(units)
        )

    def delete_offsets(self, user_id: Optional[int] = None, commit: bool = True) -> int:
        """Delete one user's offsets, or every offset when ``user_id`` is None."""
        query = self.db.query(UserOffsetStatsModel)
        if user_id is not None:
            query = query.filter(UserOffsetStatsModel.user_id == user_id)
        deleted = query.delete(synchronize_session=False)
        self._commit_or_flush(commit)
        return deleted

    # ------------------------------------------------------------------
    # TC stats time series
    # ------------------------------------------------------------------

    @staticmethod
    def _to_tc_stats(instance: UserTcStatsModel) -> UserTcStats:
        return UserTcStats(
            user_id=instance.user_id,
            timestamp=instance.utc_timestamp,
            points=instance.tc_points,
            multiplied_points=instance.tc_points_multiplied,
            units=instance.tc_units,
        )

    def create_tc_stats(self, stats: UserTcStats, commit: bool = True) -> UserTcStats:
        instance = UserTcStatsModel(
            user_id=stats.user_id,
            utc_timestamp=stats.timestamp,
            tc_points=stats.points,
            tc_points_multiplied=stats.multiplied_points,
            tc_units=stats.units,
        )
        self.db.add(instance)
        self._commit_or_flush(commit)
        return self._to_tc_stats(instance)

    def get_latest_tc_stats_for_users(self, user_ids: Iterable[int]) -> Dict[int, UserTcStats]:
        ids = list(user_ids)
        if not ids:
            return {}
        latest_ids = (
            self.db.query(func.max(UserTcStatsModel.id))
            .filter(UserTcStatsModel.user_id.in_(ids))
            .group_by(UserTcStatsModel.user_id)
        )
        instances = (
            self.db.query(UserTcStatsModel)
            .filter(UserTcStatsModel.id.in_(latest_ids.scalar_subquery()))
            .all()
        )
        return {instance.user_id: self._to_tc_stats(instance) for instance in instances}

    def get_tc_stats_series(
        self, user_id: int, until: Optional[datetime] = None
    ) -> List[UserTcStats]:
        """A user's TC stats rows ordered by timestamp, optionally only before ``until``."""
        query = self.db.query(UserTcStatsModel).filter(UserTcStatsModel.user_id == user_id)
        if until is not None:
            query = query.filter(UserTcStatsModel.utc_timestamp < until)
        instances = query.order_by(UserTcStatsModel.utc_timestamp, UserTcStatsModel.id).all()
        return [self._to_tc_stats(instance) for instance in instances]

    # ------------------------------------------------------------------
    # Retired contributions
    # ------------------------------------------------------------------

    @staticmethod
    def _to_retired(instance: RetiredUserStatsModel) -> RetiredUserTcStats:
        return RetiredUserTcStats(
            id=instance.id,
            team_id=instance.team_id,
            user_id=instance.user_id,
            display_name=instance.display_name,
            timestamp=instance.utc_timestamp,
            points=instance.tc_points,
            multiplied_points=instance.tc_points_multiplied,
            units=instance.tc_units,
        )

    def create_retired_stats(
        self,
        team_id: int,
        user_id: int,
        display_name: str,
        stats: UserTcStats,
        timestamp: datetime,
        commit: bool = True,
    ) -> RetiredUserTcStats:
        instance = RetiredUserStatsModel(
            team_id=team_id,
            user_id=user_id,
            display_name=display_name,
            utc_timestamp=timestamp,
            tc_points=stats.points,
            tc_points_multiplied=stats.multiplied_points,
            tc_units=stats.units,
        )
        self.db.add(instance)
        self._commit_or_flush(commit)
        return self._to_retired(instance)

    def get_all_retired_stats(self) -> List[RetiredUserTcStats]:
        instances = self.db.query(RetiredUserStatsModel).order_by(RetiredUserStatsModel.id).all()
        return [self._to_retired(instance) for instance in instances]

    def delete_all_retired_stats(self, commit: bool = True) -> int:
        deleted = self.db.query(RetiredUserStatsModel).delete(synchronize_session=False)
        self._commit_or_flush(commit)
        return deleted

    def delete_user_stats(self, user_id: int, commit: bool = True) -> None:
        """Remove a deleted user's per-user rows. Retired contributions are kept."""
        for model in (
            UserTotalStatsModel,
            UserInitialStatsModel,
            UserOffsetStatsModel,
            UserTcStatsModel,
        ):
            self.db.query(model).filter(model.user_id == user_id).delete(
                synchronize_session=False
            )
        self._commit_or_flush(commit)
