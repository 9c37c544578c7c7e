"""
User management.

Besides plain CRUD, user changes are competition state changes:

- moving team retires the user from the old team first
- swapping to hardware with a different multiplier carries the current stats
  forward so only new points use the new multiplier
- a new folding name or passkey is a new identity and gets a fresh baseline
- deleting a user retires them
"""

import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from tcapi.config import Settings
from tcapi.core.exceptions import ConflictError, NotFoundError, ValidationError
from tcapi.core.locks import user_lock
from tcapi.repositories.hardware_repository import HardwareRepository
from tcapi.repositories.stats_repository import StatsRepository
from tcapi.repositories.team_repository import TeamRepository
from tcapi.repositories.user_repository import UserRepository
from tcapi.schemas.hardware import Hardware
from tcapi.schemas.user import User, UserCreate, UserUpdate
from tcapi.services.retirement_service import RetirementService
from tcapi.services.stats_provider import HttpStatsProvider, StatsProvider
from tcapi.services.tc_stats_service import TcStatsService

logger = logging.getLogger(__name__)


class UserService:
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
        self.team_repo = TeamRepository(db)
        self.hardware_repo = HardwareRepository(db)
        self.stats_repo = StatsRepository(db)
        self.tc_stats_service = TcStatsService(db, settings, self.stats_provider)
        self.retirement_service = RetirementService(db, settings, self.stats_provider)

    def _present(self, user: User, privileged: bool) -> User:
        if privileged:
            return user
        return user.masked(self.settings.PASSKEY_VISIBLE_CHARS)

    def get_all_users(self, privileged: bool = False) -> List[User]:
        return [self._present(user, privileged) for user in self.user_repo.get_all()]

    def get_user(self, user_id: int, privileged: bool = False) -> User:
        user = self.user_repo.get_by_id(user_id)
        if not user:
            raise NotFoundError(f"User not found: {user_id}", details={"user_id": user_id})
        return self._present(user, privileged)

    def _validate(self, user: UserCreate, exclude_user_id: Optional[int] = None) -> Hardware:
        """Check a user's team, hardware and category rules, returning the hardware."""
        hardware = self.hardware_repo.get_by_id(user.hardware_id)
        if hardware is None:
            raise ValidationError(
                f"Hardware not found: {user.hardware_id}",
                details={"hardware_id": user.hardware_id},
            )
        if not user.category.supports(hardware.hardware_make.value, hardware.hardware_type.value):
            raise ValidationError(
                f"Hardware '{hardware.hardware_name}' is not valid for category {user.category.value}",
                details={"hardware_id": hardware.id, "category": user.category.value},
            )

        if not self.team_repo.exists(user.team_id):
            raise ValidationError(
                f"Team not found: {user.team_id}", details={"team_id": user.team_id}
            )

        in_category = self.user_repo.count_in_team_category(
            user.team_id, user.category.value, exclude_user_id=exclude_user_id
        )
        if in_category >= self.settings.USERS_PER_CATEGORY:
            raise ValidationError(
                f"Team {user.team_id} already has {in_category} user(s) in category "
                f"{user.category.value}",
                details={"team_id": user.team_id, "category": user.category.value},
            )

        if user.is_captain:
            captain = self.user_repo.get_captain(user.team_id)
            if captain and captain.id != exclude_user_id:
                raise ValidationError(
                    f"Team {user.team_id} already has a captain: {captain.display_name}",
                    details={"team_id": user.team_id, "captain_id": captain.id},
                )

        existing = self.user_repo.get_by_identity(user.folding_user_name, user.passkey)
        if existing and existing.id != exclude_user_id:
            raise ConflictError(
                f"User already exists with folding name '{user.folding_user_name}' and that passkey",
                details={"user_id": existing.id},
            )
        return hardware

    def create_user(self, request: UserCreate) -> User:
        """Create a user whose TC stats start from their current totals."""
        self._validate(request)
        try:
            user = self.user_repo.create(commit=False, **request.model_dump(mode="json"))
            self.tc_stats_service.initialise_user(user, commit=False)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info(f"Created user {user.id} ({user.display_name}) in team {user.team_id}")
        return user

    def update_user(self, user_id: int, request: UserUpdate) -> User:
        existing = self.user_repo.get_by_id(user_id)
        if not existing:
            raise NotFoundError(f"User not found: {user_id}", details={"user_id": user_id})

        update_fields = request.model_dump(exclude_unset=True, exclude_none=True)
        updated = UserCreate(**{**existing.model_dump(exclude={"id"}), **update_fields})
        new_hardware = self._validate(updated, exclude_user_id=user_id)
        candidate = User(id=user_id, **updated.model_dump())

        with user_lock(user_id):
            try:
                if updated.team_id != existing.team_id:
                    logger.info(
                        f"User {user_id} moving from team {existing.team_id} to {updated.team_id}"
                    )
                    self.retirement_service.retire(existing, commit=False)

                identity_changed = (
                    updated.folding_user_name != existing.folding_user_name
                    or updated.passkey != existing.passkey
                )
                if identity_changed:
                    self.tc_stats_service.carry_identity_change(candidate, commit=False)
                elif updated.hardware_id != existing.hardware_id:
                    old_hardware = self.hardware_repo.get_by_id(existing.hardware_id)
                    if old_hardware is None or old_hardware.multiplier != new_hardware.multiplier:
                        self.tc_stats_service.carry_multiplier_change(
                            existing, new_hardware.multiplier, commit=False
                        )

                user = self.user_repo.update(
                    user_id, **updated.model_dump(mode="json")
                )
            except Exception:
                self.db.rollback()
                raise
        return user

    def delete_user(self, user_id: int) -> None:
        """Retire the user from their team and remove them with their stats history."""
        existing = self.user_repo.get_by_id(user_id)
        if not existing:
            raise NotFoundError(f"User not found: {user_id}", details={"user_id": user_id})

        with user_lock(user_id):
            try:
                self.retirement_service.retire(existing, commit=False)
                self.stats_repo.delete_user_stats(user_id, commit=False)
                self.user_repo.delete(user_id)
            except Exception:
                self.db.rollback()
                raise
        logger.info(f"Deleted user {user_id} ({existing.display_name})")
