from enum import Enum
from typing import Optional

from sqlalchemy import BigInteger, Float, String
from sqlalchemy.orm import Mapped, mapped_column

from tcapi.models.base import EntityModel, IdType


class HardwareMake(str, Enum):
    AMD = "AMD"
    NVIDIA = "NVIDIA"
    INTEL = "INTEL"


class HardwareType(str, Enum):
    CPU = "CPU"
    GPU = "GPU"


class Hardware(EntityModel):
    __tablename__ = "hardware"

    id: Mapped[int] = mapped_column(IdType, primary_key=True, autoincrement=True)
    hardware_name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    hardware_make: Mapped[str] = mapped_column(String(20), nullable=False)
    hardware_type: Mapped[str] = mapped_column(String(20), nullable=False)
    multiplier: Mapped[float] = mapped_column(Float, nullable=False, default=1.0)
    average_ppd: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)

    def __repr__(self):
        return f"<Hardware(id={self.id}, name={self.hardware_name}, multiplier={self.multiplier})>"
