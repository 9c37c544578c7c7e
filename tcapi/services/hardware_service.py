import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from tcapi.config import Settings
from tcapi.core.exceptions import ConflictError, NotFoundError
from tcapi.repositories.hardware_repository import HardwareRepository
from tcapi.repositories.user_repository import UserRepository
from tcapi.schemas.hardware import Hardware, HardwareCreate, HardwareUpdate
from tcapi.services.stats_provider import StatsProvider
from tcapi.services.tc_stats_service import TcStatsService

logger = logging.getLogger(__name__)


class HardwareService:
    """Hardware CRUD; a multiplier change carries its users' stats forward"""

    def __init__(
        self,
        db: Session,
        settings: Settings,
        stats_provider: Optional[StatsProvider] = None,
    ):
        self.db = db
        self.settings = settings
        self.hardware_repo = HardwareRepository(db)
        self.user_repo = UserRepository(db)
        self.tc_stats_service = TcStatsService(db, settings, stats_provider)

    def get_all_hardware(self) -> List[Hardware]:
        return self.hardware_repo.get_all()

    def get_hardware(self, hardware_id: int) -> Hardware:
        hardware = self.hardware_repo.get_by_id(hardware_id)
        if not hardware:
            raise NotFoundError(
                f"Hardware not found: {hardware_id}", details={"hardware_id": hardware_id}
            )
        return hardware

    def create_hardware(self, request: HardwareCreate) -> Hardware:
        if self.hardware_repo.get_by_name(request.hardware_name):
            raise ConflictError(
                f"Hardware already exists: {request.hardware_name}",
                details={"hardware_name": request.hardware_name},
            )
        hardware = self.hardware_repo.create(**request.model_dump(mode="json"))
        logger.info(f"Created hardware {hardware.id} ({hardware.hardware_name})")
        return hardware

    def update_hardware(self, hardware_id: int, request: HardwareUpdate) -> Hardware:
        existing = self.get_hardware(hardware_id)
        update_fields = request.model_dump(mode="json", exclude_unset=True, exclude_none=True)

        new_multiplier = update_fields.get("multiplier")
        try:
            if new_multiplier is not None and new_multiplier != existing.multiplier:
                users = self.user_repo.get_by_hardware(hardware_id)
                logger.info(
                    f"Multiplier for hardware {hardware_id} changing from "
                    f"{existing.multiplier} to {new_multiplier}, updating {len(users)} users"
                )
                for user in users:
                    self.tc_stats_service.carry_multiplier_change(
                        user, new_multiplier, commit=False
                    )
            updated = self.hardware_repo.update(hardware_id, **update_fields)
        except Exception:
            self.db.rollback()
            raise
        return updated

    def delete_hardware(self, hardware_id: int) -> None:
        self.get_hardware(hardware_id)
        if self.user_repo.get_by_hardware(hardware_id):
            raise ConflictError(
                f"Hardware {hardware_id} is still used by users",
                details={"hardware_id": hardware_id},
            )
        self.hardware_repo.delete(hardware_id)
        logger.info(f"Deleted hardware {hardware_id}")
