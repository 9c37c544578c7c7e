"""
TC stats calculation and the update cycle.

For every user with a passkey the cycle fetches the all-time totals from the
stats provider, measures them against the user's baseline, applies the hardware
multiplier and folds in the user's offsets. The result is appended as a new TC
stats row; earlier rows are never modified.
"""

import logging
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Iterable, List, Optional

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from tcapi.config import Settings
from tcapi.core.exceptions import (
    NotFoundError,
    StatsNotFoundError,
    StatsProviderError,
    StatsUnavailableError,
)
from tcapi.core.locks import single_flight, user_lock
from tcapi.logging_config import STATS_LOGGER_NAME
from tcapi.models.stats import OffsetSource
from tcapi.repositories.hardware_repository import HardwareRepository
from tcapi.repositories.stats_repository import StatsRepository
from tcapi.repositories.user_repository import UserRepository
from tcapi.schemas.stats import (
    OffsetRequest,
    OffsetTcStats,
    Stats,
    UpdateCycleResult,
    UserInitialStats,
    UserOffsetStats,
    UserTcStats,
    UserUpdateError,
)
from tcapi.schemas.user import User
from tcapi.services.stats_provider import (
    HttpStatsProvider,
    StatsProvider,
    fetch_totals_concurrently,
)
from tcapi.utils.date_utils import utc_now

logger = logging.getLogger(__name__)
stats_logger = logging.getLogger(STATS_LOGGER_NAME)


def multiply_points(points: int, multiplier: float) -> int:
    """``round(points * multiplier)`` rounding halves up."""
    product = Decimal(points) * Decimal(str(multiplier))
    return int(product.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def calculate_tc_stats(
    user_id: int,
    timestamp: datetime,
    totals: Stats,
    baseline: Optional[UserInitialStats],
    multiplier: float,
    offset: Optional[OffsetTcStats] = None,
) -> UserTcStats:
    """Stats earned since ``baseline`` with the multiplier and offset applied.

    Deltas below the baseline and fields driven negative by an offset are
    clamped to zero independently.
    """
    baseline_points = baseline.points if baseline else 0
    baseline_units = baseline.units if baseline else 0
    points = max(0, totals.points - baseline_points)
    units = max(0, totals.units - baseline_units)
    stats = UserTcStats(
        user_id=user_id,
        timestamp=timestamp,
        points=points,
        multiplied_points=multiply_points(points, multiplier),
        units=units,
    )
    if offset is None:
        return stats
    return stats.with_offset(offset)


class TcStatsService:
    """Update cycle, TC stats reads and manual offsets"""

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
        self.hardware_repo = HardwareRepository(db)
        self.stats_repo = StatsRepository(db)

    # ------------------------------------------------------------------
    # Update cycle
    # ------------------------------------------------------------------

    def run_update_cycle(self) -> UpdateCycleResult:
        """Run one update cycle over every user.

        Only one cycle (or period reset) runs at a time; a second caller gets a
        ``ConflictError`` once the lock timeout expires. Provider failures and
        unexpected per-user errors skip that user only. Losing the database
        connection aborts the cycle.
        """
        with single_flight("update cycle", self.settings.CYCLE_LOCK_TIMEOUT_SECONDS):
            return self._run_update_cycle()

    def _run_update_cycle(self) -> UpdateCycleResult:
        started_at = utc_now()
        result = UpdateCycleResult(started_at=started_at, finished_at=started_at)
        users = self.user_repo.get_all()
        logger.info(f"Starting TC stats update for {len(users)} users")

        eligible: List[User] = []
        for user in users:
            if not user.has_passkey:
                stats_logger.warning(
                    f"{user.display_name} (ID: {user.id}): no passkey, skipping"
                )
                result.skipped_count += 1
                continue
            eligible.append(user)

        fetched = fetch_totals_concurrently(
            self.stats_provider, eligible, self.settings.STATS_MAX_WORKERS
        )

        for user in eligible:
            outcome = fetched.get(user.id)
            if isinstance(outcome, StatsProviderError) or outcome is None:
                reason = outcome.message if outcome is not None else "no response"
                stats_logger.warning(
                    f"{user.display_name} (ID: {user.id}): unable to get stats: {reason}"
                )
                result.skipped_count += 1
                result.errors.append(
                    UserUpdateError(user_id=user.id, display_name=user.display_name, reason=reason)
                )
                continue

            try:
                applied = self._apply_totals(user, outcome, started_at)
            except OperationalError:
                self.db.rollback()
                logger.exception("Database unavailable, aborting update cycle")
                raise
            except Exception as e:
                self.db.rollback()
                logger.exception(f"Unexpected error updating user {user.id}")
                result.skipped_count += 1
                result.errors.append(
                    UserUpdateError(user_id=user.id, display_name=user.display_name, reason=str(e))
                )
                continue

            if applied:
                result.applied_count += 1
            else:
                result.skipped_count += 1

        result.finished_at = utc_now()
        logger.info(
            f"TC stats update finished: {result.applied_count} applied, "
            f"{result.skipped_count} skipped"
        )
        return result

    def _apply_totals(self, user: User, totals: Stats, timestamp: datetime) -> bool:
        """Persist the snapshot and the new TC stats row for one user atomically."""
        with user_lock(user.id):
            current = self.user_repo.get_by_id(user.id)
            if current is None:
                stats_logger.info(f"{user.display_name} (ID: {user.id}): deleted during update")
                return False
            if current.folding_user_name != user.folding_user_name or current.passkey != user.passkey:
                stats_logger.info(f"{user.display_name} (ID: {user.id}): identity changed during update")
                return False

            baseline = self.stats_repo.get_initial_stats(user.id)
            if baseline is not None and baseline.timestamp > timestamp:
                # Retired or re-baselined after the fetch, totals are stale
                stats_logger.info(f"{user.display_name} (ID: {user.id}): baseline reset during update")
                return False

            hardware = self.hardware_repo.get_by_id(current.hardware_id)
            multiplier = hardware.multiplier if hardware else 1.0
            offset = self._cycle_offset(user.id, timestamp)
            tc_stats = calculate_tc_stats(user.id, timestamp, totals, baseline, multiplier, offset)

            self.stats_repo.create_total_stats(
                user.id, timestamp, totals.points, totals.units, commit=False
            )
            self.stats_repo.create_tc_stats(tc_stats, commit=False)
            self.stats_repo.commit()

        stats_logger.info(
            f"{current.display_name} (ID: {user.id}): {tc_stats.multiplied_points:,} TC points "
            f"({tc_stats.points:,} unmultiplied) | {tc_stats.units:,} TC units"
        )
        return True

    def _cycle_offset(self, user_id: int, timestamp: datetime) -> OffsetTcStats:
        """Carry offsets plus manual offsets applied up to ``timestamp``.

        Manual offsets applied later are folded in on read until the next cycle.
        """
        carry = self.stats_repo.get_offset_sum(user_id, source=OffsetSource.CARRY)
        manual = self.stats_repo.get_offset_sum(
            user_id, source=OffsetSource.MANUAL, until=timestamp
        )
        return carry + manual

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_user_tc_stats(self, user_id: int) -> UserTcStats:
        """Current TC stats for an existing user, zero when nothing was recorded"""
        if not self.user_repo.exists(user_id):
            raise NotFoundError(f"User not found: {user_id}", details={"user_id": user_id})
        return self.get_tc_stats_for_users([user_id])[user_id]

    def get_tc_stats_for_users(self, user_ids: Iterable[int]) -> Dict[int, UserTcStats]:
        """Latest persisted TC stats per user with later manual offsets folded in."""
        ids = list(user_ids)
        latest = self.stats_repo.get_latest_tc_stats_for_users(ids)
        now = utc_now()
        current: Dict[int, UserTcStats] = {}
        for user_id in ids:
            stats = latest.get(user_id)
            if stats is None:
                pending = self.stats_repo.get_offset_sum(user_id, source=OffsetSource.MANUAL)
                stats = UserTcStats.empty(user_id, now)
            else:
                pending = self.stats_repo.get_offset_sum(
                    user_id, source=OffsetSource.MANUAL, after=stats.timestamp
                )
            current[user_id] = stats if pending.is_empty else stats.with_offset(pending)
        return current

    def get_offsets(self, user_id: int) -> List[UserOffsetStats]:
        if not self.user_repo.exists(user_id):
            raise NotFoundError(f"User not found: {user_id}", details={"user_id": user_id})
        return self.stats_repo.get_offsets(user_id)

    # ------------------------------------------------------------------
    # Offsets and state changes
    # ------------------------------------------------------------------

    def apply_offset(self, user_id: int, request: OffsetRequest) -> UserOffsetStats:
        """Record a manual offset; it is visible to readers immediately."""
        if not self.user_repo.exists(user_id):
            raise NotFoundError(f"User not found: {user_id}", details={"user_id": user_id})

        offset = OffsetTcStats(**request.model_dump())
        with user_lock(user_id):
            created = self.stats_repo.create_offset(
                user_id, utc_now(), offset, source=OffsetSource.MANUAL
            )
        logger.info(
            f"Applied offset to user {user_id}: {offset.points} points, "
            f"{offset.multiplied_points} multiplied points, {offset.units} units"
        )
        return created

    def carry_multiplier_change(
        self, user: User, new_multiplier: float, commit: bool = True
    ) -> OffsetTcStats:
        """Clear a user's offsets and keep their current stats under a new multiplier.

        The baseline stays in place. A single carry offset makes the stats
        computed from the latest snapshot at the new multiplier equal the stats
        the user already has, so only deltas from now on use the new multiplier.
        """
        with user_lock(user.id):
            current = self.get_tc_stats_for_users([user.id])[user.id]
            snapshot = self.stats_repo.get_latest_total_stats(user.id)
            baseline = self.stats_repo.get_initial_stats(user.id)
            if snapshot is None:
                recomputed = UserTcStats.empty(user.id, current.timestamp)
            else:
                recomputed = calculate_tc_stats(
                    user.id,
                    current.timestamp,
                    Stats(points=snapshot.points, units=snapshot.units),
                    baseline,
                    new_multiplier,
                )
            carry = self._replace_offsets_with_carry(user.id, current, recomputed, commit)

        logger.info(
            f"Multiplier for user {user.id} changed to {new_multiplier}, "
            f"carrying {carry.multiplied_points} multiplied points"
        )
        return carry

    def carry_identity_change(self, user: User, commit: bool = True) -> OffsetTcStats:
        """Re-baseline a user whose folding name or passkey changed.

        The new identity's totals become the baseline and the user's current
        stats are carried forward as an offset. ``user`` carries the new identity.
        """
        totals = self.fetch_totals_for_baseline(user)
        with user_lock(user.id):
            current = self.get_tc_stats_for_users([user.id])[user.id]
            now = utc_now()
            self.stats_repo.set_initial_stats(
                user.id, now, totals.points, totals.units, commit=False
            )
            self.stats_repo.create_total_stats(
                user.id, now, totals.points, totals.units, commit=False
            )
            carry = self._replace_offsets_with_carry(
                user.id, current, UserTcStats.empty(user.id, now), commit
            )

        logger.info(f"Identity for user {user.id} changed, new baseline {totals.points} points")
        return carry

    def _replace_offsets_with_carry(
        self, user_id: int, current: UserTcStats, recomputed: UserTcStats, commit: bool
    ) -> OffsetTcStats:
        carry = OffsetTcStats(
            points=current.points - recomputed.points,
            multiplied_points=current.multiplied_points - recomputed.multiplied_points,
            units=current.units - recomputed.units,
        )
        now = utc_now()
        self.stats_repo.delete_offsets(user_id, commit=False)
        if not carry.is_empty:
            self.stats_repo.create_offset(
                user_id, now, carry, source=OffsetSource.CARRY, commit=False
            )
        # Pending manual offsets are now part of the carry, so pin them in a row
        self.stats_repo.create_tc_stats(
            current.model_copy(update={"timestamp": now}), commit=False
        )
        if commit:
            self.stats_repo.commit()
        return carry

    def fetch_totals_for_baseline(self, user: User) -> Stats:
        """Totals to use as a new user's baseline.

        Users without a passkey and identities unknown to the provider start
        from zero. A provider that cannot be reached raises
        ``StatsUnavailableError`` so the caller can retry later.
        """
        if not user.has_passkey:
            return Stats()
        try:
            return self.stats_provider.fetch_totals(user)
        except StatsNotFoundError:
            logger.info(f"No existing stats for '{user.folding_user_name}', baseline is zero")
            return Stats()
        except StatsProviderError as e:
            logger.warning(f"Unable to fetch baseline for '{user.folding_user_name}': {e.message}")
            raise StatsUnavailableError(
                f"Unable to get stats for '{user.folding_user_name}', try again later",
                details={"url": e.url},
            )

    def initialise_user(self, user: User, commit: bool = True) -> UserInitialStats:
        """Capture a new user's baseline and a zero TC stats row."""
        totals = self.fetch_totals_for_baseline(user)
        now = utc_now()
        with user_lock(user.id):
            baseline = self.stats_repo.set_initial_stats(
                user.id, now, totals.points, totals.units, commit=False
            )
            self.stats_repo.create_total_stats(
                user.id, now, totals.points, totals.units, commit=False
            )
            self.stats_repo.create_tc_stats(UserTcStats.empty(user.id, now), commit=False)
            if commit:
                self.stats_repo.commit()
        return baseline
