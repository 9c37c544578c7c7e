from enum import Enum
from typing import List, Optional, Union

from sqlalchemy import BigInteger, Boolean, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.schema import UniqueConstraint

from tcapi.models.base import EntityModel, IdType
from tcapi.models.hardware import HardwareMake, HardwareType


class Category(str, Enum):
    """Competition categories. Every category always appears in leaderboards."""

    AMD_GPU = "AMD_GPU"
    NVIDIA_GPU = "NVIDIA_GPU"
    WILDCARD = "WILDCARD"

    @classmethod
    def all(cls) -> List["Category"]:
        return list(cls)

    @classmethod
    def get(cls, value: Union[str, "Category"]) -> Optional["Category"]:
        """Case-insensitive lookup, None for unknown values"""
        if isinstance(value, cls):
            return value
        for category in cls:
            if category.value.lower() == str(value).lower():
                return category
        return None

    @property
    def supported_hardware_makes(self) -> List[HardwareMake]:
        if self is Category.AMD_GPU:
            return [HardwareMake.AMD]
        if self is Category.NVIDIA_GPU:
            return [HardwareMake.NVIDIA]
        return list(HardwareMake)

    @property
    def supported_hardware_types(self) -> List[HardwareType]:
        if self is Category.WILDCARD:
            return list(HardwareType)
        return [HardwareType.GPU]

    def supports(self, hardware_make: str, hardware_type: str) -> bool:
        makes = {make.value for make in self.supported_hardware_makes}
        types = {hardware.value for hardware in self.supported_hardware_types}
        return hardware_make in makes and hardware_type in types


class User(EntityModel):
    __tablename__ = "users"
    __table_args__ = (
        UniqueConstraint("folding_user_name", "passkey", name="uq_user_folding_identity"),
        Index("idx_users_team_id", "team_id"),
        Index("idx_users_hardware_id", "hardware_id"),
    )

    id: Mapped[int] = mapped_column(IdType, primary_key=True, autoincrement=True)
    folding_user_name: Mapped[str] = mapped_column(String(255), nullable=False)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    passkey: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    category: Mapped[str] = mapped_column(String(32), nullable=False)
    profile_link: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    live_stats_link: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    hardware_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("hardware.id"), nullable=False
    )
    team_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("teams.id"), nullable=False
    )
    is_captain: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    def __repr__(self):
        return f"<User(id={self.id}, name={self.display_name}, team_id={self.team_id})>"
