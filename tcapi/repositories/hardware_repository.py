from typing import List, Optional

from sqlalchemy.orm import Session

from tcapi.models.hardware import Hardware as HardwareModel
from tcapi.repositories.base import BaseRepository
from tcapi.schemas.hardware import Hardware


class HardwareRepository(BaseRepository[HardwareModel, Hardware]):
    def __init__(self, db: Session):
        super().__init__(HardwareModel, Hardware, db)

    def get_by_name(self, hardware_name: str) -> Optional[Hardware]:
        return self.get_by_field("hardware_name", hardware_name)

    def get_all(self) -> List[Hardware]:
        return self.find_all(order_by="id")
